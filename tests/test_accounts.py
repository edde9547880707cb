# tests/test_accounts.py
import grp
import pwd
from unittest.mock import MagicMock

import pytest

from devopsfetch.accounts import AccountInspector, parse_lastlog
from devopsfetch.commands import CommandRunner
from devopsfetch.errors import AccountNotFound, DependencyMissing
from devopsfetch.models import LOGIN_UNKNOWN, NO_LOGIN_RECORDED

LASTLOG_HEADER = "Username         Port     From             Latest\n"

def passwd(name, uid, gid=None, home=None, shell="/bin/bash", gecos=""):
    return pwd.struct_passwd((name, "x", uid, uid if gid is None else gid, gecos, home or f"/home/{name}", shell))

PASSWD = [
    passwd("root", 0, home="/root"),
    passwd("daemon", 1, home="/usr/sbin", shell="/usr/sbin/nologin"),
    passwd("svc", 999),
    passwd("bob", 1001),
    passwd("alice", 1000, gecos="Alice Example"),
    passwd("nobody", 65534, home="/nonexistent", shell="/usr/sbin/nologin"),
]

def fake_lastlog(command, **kwargs):
    user = command[-1]
    if user == "alice":
        return LASTLOG_HEADER + "alice            pts/0    10.0.0.5         Mon Oct 14 10:00:00 +0000 2024\n"
    return LASTLOG_HEADER + f"{user:<16} **Never logged in**\n"

@pytest.fixture
def inspector(mocker):
    mocker.patch("devopsfetch.accounts.pwd.getpwall", return_value=PASSWD)
    runner = MagicMock(spec=CommandRunner)
    runner.run.side_effect = fake_lastlog
    return AccountInspector(uid_min=1000, denylist=["nobody"], runner=runner, logger=MagicMock())

# --- parse_lastlog ---
def test_parse_lastlog_timestamp():
    output = LASTLOG_HEADER + "alice            pts/0    10.0.0.5         Mon Oct 14 10:00:00 +0000 2024\n"
    assert parse_lastlog(output) == "2024-10-14 10:00:00"

def test_parse_lastlog_without_port_and_host():
    output = LASTLOG_HEADER + "carol                                      Tue Jan  2 08:30:00 +0100 2024\n"
    assert parse_lastlog(output) == "2024-01-02 08:30:00"

def test_parse_lastlog_never_logged_in():
    assert parse_lastlog(LASTLOG_HEADER + "bob              **Never logged in**\n") == NO_LOGIN_RECORDED

def test_parse_lastlog_garbage_is_unknown():
    assert parse_lastlog("") == LOGIN_UNKNOWN
    assert parse_lastlog(LASTLOG_HEADER + "bob  something unexpected here and there now\n") == LOGIN_UNKNOWN

# --- list_accounts ---
def test_list_accounts_applies_threshold_and_denylist(inspector):
    accounts = inspector.list_accounts()
    assert [a.username for a in accounts] == ["alice", "bob"]
    for account in accounts:
        assert account.uid >= 1000
        assert account.username != "nobody"

def test_list_accounts_last_login_values_are_explicit(inspector):
    accounts = {a.username: a for a in inspector.list_accounts()}
    assert accounts["alice"].last_login == "2024-10-14 10:00:00"
    assert accounts["bob"].last_login == NO_LOGIN_RECORDED

def test_last_login_tool_missing_is_unknown(inspector):
    inspector.runner.run.side_effect = DependencyMissing("'lastlog' is not installed or not in PATH")
    accounts = inspector.list_accounts()
    assert {a.last_login for a in accounts} == {LOGIN_UNKNOWN}
    assert all(a.last_login for a in accounts)

# --- describe_account ---
def test_describe_account_not_found():
    runner = MagicMock(spec=CommandRunner)
    inspector = AccountInspector(runner=runner, logger=MagicMock())
    with pytest.raises(AccountNotFound):
        inspector.describe_account("doesnotexist123")
    runner.run.assert_not_called()

def test_describe_account_details(inspector, mocker):
    mocker.patch("devopsfetch.accounts.pwd.getpwnam", return_value=PASSWD[4])
    mocker.patch("devopsfetch.accounts.grp.getgrgid", return_value=grp.struct_group(("alice", "x", 1000, [])))
    mocker.patch("devopsfetch.accounts.grp.getgrall", return_value=[
        grp.struct_group(("sudo", "x", 27, ["alice", "bob"])),
        grp.struct_group(("docker", "x", 998, ["bob"])),
    ])
    account = inspector.describe_account("alice")
    assert account.uid == 1000
    assert account.gecos == "Alice Example"
    assert account.shell == "/bin/bash"
    assert account.groups == ["alice", "sudo"]
    assert account.last_login == "2024-10-14 10:00:00"
