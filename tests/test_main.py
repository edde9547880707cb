# tests/test_main.py
from unittest.mock import MagicMock

import pytest

import main
from config.settings import settings
from devopsfetch.errors import CommandFailed, ContainerNotFound, EngineNotRunning, VirtualHostNotFound
from devopsfetch.models import Account, PortBinding

# --- argument handling ---
def test_time_requires_two_arguments(mocker, capsys):
    mock_query = mocker.patch("main.ActivityLogQuery")
    with pytest.raises(SystemExit) as exc:
        main.main(["-t", "2024-01-01 00:00:00"])
    assert exc.value.code == 2
    assert "usage:" in capsys.readouterr().err
    mock_query.assert_not_called()

def test_no_selector_prints_usage(capsys):
    with pytest.raises(SystemExit) as exc:
        main.main([])
    assert exc.value.code == 2
    assert "usage:" in capsys.readouterr().err

def test_multiple_selectors_rejected():
    with pytest.raises(SystemExit) as exc:
        main.main(["-p", "-u"])
    assert exc.value.code == 2

def test_unknown_selector_rejected():
    with pytest.raises(SystemExit) as exc:
        main.main(["--bogus"])
    assert exc.value.code != 0

def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc:
        main.main(["-h"])
    assert exc.value.code == 0
    assert "devopsfetch -p 80" in capsys.readouterr().out

def test_malformed_timestamp_is_invalid_input(mocker, capsys):
    runner = MagicMock()
    mocker.patch("devopsfetch.journal.CommandRunner", return_value=runner)
    assert main.main(["-t", "yesterday", "today"]) == 2
    err = capsys.readouterr().err
    assert "Error: Invalid time 'yesterday'" in err
    runner.first_line.assert_not_called()
    runner.run.assert_not_called()

def test_bad_port_argument(capsys):
    assert main.main(["-p", "http"]) == 2
    assert "Invalid port number" in capsys.readouterr().err

# --- single-shot dispatch ---
def test_list_ports(mocker, capsys):
    mocker.patch("main.PortInspector").return_value.list_ports.return_value = [
        PortBinding(port=22, protocol="tcp", process="sshd")
    ]
    assert main.main(["--port"]) == 0
    out = capsys.readouterr().out
    assert "Active Ports and Services:" in out
    assert "sshd" in out

def test_empty_result_is_success(mocker, capsys):
    mocker.patch("main.PortInspector").return_value.list_ports.return_value = []
    assert main.main(["-p"]) == 0
    assert "(no entries)" in capsys.readouterr().out

def test_docker_daemon_down_prints_no_partial_output(mocker, capsys):
    inspector = mocker.patch("main.ContainerInspector").return_value
    inspector.list_containers.side_effect = EngineNotRunning("Docker daemon is not running or unreachable at local socket")
    assert main.main(["-d"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "Error: Docker daemon is not running or unreachable at local socket"
    inspector.disconnect.assert_called_once()

def test_container_not_found(mocker, capsys):
    inspector = mocker.patch("main.ContainerInspector").return_value
    inspector.describe_container.side_effect = ContainerNotFound("No such container: ghost")
    assert main.main(["-d", "ghost"]) == 0
    assert "No such container: ghost" in capsys.readouterr().err

def test_unknown_user(capsys):
    assert main.main(["-u", "doesnotexist123"]) == 0
    assert "Error: No such user: doesnotexist123" in capsys.readouterr().err

def test_list_users(mocker, capsys):
    mocker.patch("main.AccountInspector").return_value.list_accounts.return_value = [
        Account(username="alice", uid=1000, gid=1000, home="/home/alice", last_login="no login recorded")
    ]
    assert main.main(["-u"]) == 0
    out = capsys.readouterr().out
    assert "USER" in out and "alice" in out and "no login recorded" in out

def test_nginx_detail(mocker, capsys):
    mocker.patch("main.VirtualHostInspector").return_value.describe_virtual_host.return_value = "/etc/nginx/sites-enabled/x:\n    server_name x.com;"
    assert main.main(["-n", "x.com"]) == 0
    assert "Nginx configuration for x.com:" in capsys.readouterr().out

def test_unknown_domain_exits_zero(mocker, capsys):
    mocker.patch("main.VirtualHostInspector").return_value.describe_virtual_host.side_effect = \
        VirtualHostNotFound("No Nginx configuration found for unknown.example")
    assert main.main(["-n", "unknown.example"]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: No Nginx configuration found for unknown.example" in captured.err

def test_command_failure_exits_one(mocker, capsys):
    mocker.patch("main.PortInspector").return_value.describe_port.side_effect = CommandFailed("lsof failed (exit 2)")
    assert main.main(["-p", "22"]) == 1
    assert "Error: lsof failed" in capsys.readouterr().err

def test_unexpected_error_is_one_line(mocker, capsys):
    mocker.patch("main.PortInspector").return_value.list_ports.side_effect = RuntimeError("kaboom")
    assert main.main(["-p"]) == 1
    err = capsys.readouterr().err
    assert "Error: kaboom" in err
    assert "Traceback" not in err

# --- continuous mode ---
def test_run_cycle_isolates_failures():
    logger = MagicMock()
    later = MagicMock(return_value="Users and Last Login Times:\n(no entries)")
    sections = [
        ("ports", MagicMock(return_value="Active Ports and Services:\n(no entries)")),
        ("docker", MagicMock(side_effect=EngineNotRunning("Docker daemon is not running"))),
        ("nginx", MagicMock(side_effect=RuntimeError("boom"))),
        ("users", later),
    ]
    main.run_cycle(sections=sections, logger=logger)
    later.assert_called_once()
    assert logger.error.call_count == 2
    assert "[docker] Error: Docker daemon is not running" in logger.error.call_args_list[0].args[0]
    # 헤더 + 성공한 두 섹션
    assert logger.info.call_count == 3

def test_monitor_starts_ticker(mocker):
    mocker.patch("main.signal.signal")
    mock_ticker = mocker.patch("main.Ticker")
    assert main.main(["monitor"]) == 0
    args, kwargs = mock_ticker.call_args
    assert args[0] == settings.MONITOR_INTERVAL
    assert args[1] is main.run_cycle
    assert kwargs["overrun"] == settings.MONITOR_OVERRUN
    mock_ticker.return_value.run.assert_called_once()
