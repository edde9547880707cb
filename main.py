import argparse
import logging
import signal
import sys
import threading
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from config.settings import settings
from devopsfetch.accounts import AccountInspector
from devopsfetch.docker_client import ContainerInspector
from devopsfetch.errors import InspectorError, InvalidInput, NotFound
from devopsfetch.journal import ActivityLogQuery
from devopsfetch.logger import main_logger, monitor_logger, shutdown_logging
from devopsfetch.nginx import VirtualHostInspector
from devopsfetch.ports import PortInspector
from devopsfetch.report import (
    render_account_detail,
    render_accounts,
    render_activity,
    render_container_detail,
    render_containers,
    render_error,
    render_port_detail,
    render_ports,
    render_virtual_host_detail,
    render_virtual_hosts,
)
from devopsfetch.scheduler import Ticker

# 인자 없이 -p/-d/-n/-u 를 지정한 경우 (전체 목록)
ALL = ""

EXAMPLES = """\
Examples:
  devopsfetch -p                 # List all active ports
  devopsfetch -p 80              # Show details for port 80
  devopsfetch -d                 # List all Docker images and containers
  devopsfetch -d mycontainer     # Show details for 'mycontainer'
  devopsfetch -n                 # List all Nginx domains
  devopsfetch -n example.com     # Show Nginx config for example.com
  devopsfetch -u                 # List all users and last login times
  devopsfetch -u johndoe         # Show details for user 'johndoe'
  devopsfetch -t '2023-01-01 00:00:00' '2023-01-31 23:59:59'  # Activities in January 2023
  devopsfetch monitor            # Report ports, Docker, Nginx and users periodically
"""

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devopsfetch",
        description="Retrieve and display server information.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("-p", "--port", nargs="?", const=ALL, metavar="PORT",
                        help="display active ports or info about a specific port")
    parser.add_argument("-d", "--docker", nargs="?", const=ALL, metavar="CONTAINER",
                        help="list Docker images/containers or info about a specific container")
    parser.add_argument("-n", "--nginx", nargs="?", const=ALL, metavar="DOMAIN",
                        help="display Nginx domains or config for a specific domain")
    parser.add_argument("-u", "--users", nargs="?", const=ALL, metavar="USER",
                        help="list users and last login times or info about a specific user")
    parser.add_argument("-t", "--time", nargs=2, metavar=("START", "END"),
                        help="display journal activities within a time range")
    parser.add_argument("command", nargs="?", choices=["monitor"],
                        help="run continuously, reporting every configured interval")
    return parser

def parse_port(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InvalidInput(f"Invalid port number: {value}")

# 각 섹션 보고서 생성 (목록)
def report_ports() -> str:
    return render_ports(PortInspector().list_ports())

def report_docker() -> str:
    inspector = ContainerInspector()
    try:
        images, containers = inspector.list_containers()
    finally:
        inspector.disconnect()
    return render_containers(images, containers)

def report_nginx() -> str:
    inspector = VirtualHostInspector()
    return render_virtual_hosts(inspector.list_virtual_hosts(), inspector.config_dirs)

def report_users() -> str:
    return render_accounts(AccountInspector().list_accounts())

MONITOR_SECTIONS: List[Tuple[str, Callable[[], str]]] = [
    ("ports", report_ports),
    ("docker", report_docker),
    ("nginx", report_nginx),
    ("users", report_users),
]

def render_selection(args: argparse.Namespace) -> str:
    """선택된 컴포넌트 하나를 실행하고 보고서 문자열을 반환"""
    if args.port is not None:
        if args.port == ALL:
            return report_ports()
        port = parse_port(args.port)
        return render_port_detail(port, PortInspector().describe_port(port))

    if args.docker is not None:
        if args.docker == ALL:
            return report_docker()
        inspector = ContainerInspector()
        try:
            return render_container_detail(inspector.describe_container(args.docker))
        finally:
            inspector.disconnect()

    if args.nginx is not None:
        if args.nginx == ALL:
            return report_nginx()
        return render_virtual_host_detail(args.nginx, VirtualHostInspector().describe_virtual_host(args.nginx))

    if args.users is not None:
        if args.users == ALL:
            return report_users()
        return render_account_detail(AccountInspector().describe_account(args.users))

    start, end = args.time
    return render_activity(ActivityLogQuery().query_range(start, end))

def run_cycle(
    sections: Sequence[Tuple[str, Callable[[], str]]] = MONITOR_SECTIONS,
    logger: logging.Logger = monitor_logger
) -> None:
    """
    모니터 모드 1회 실행.
    한 섹션의 실패는 해당 섹션에 한 줄로 기록되며 나머지 섹션은 계속 실행됩니다.
    """
    now = datetime.now(settings.TZINFO).strftime("%Y-%m-%d %H:%M:%S")
    logger.info(f"===== devopsfetch report {now} =====")
    for name, collect in sections:
        try:
            logger.info("\n" + collect())
        except InspectorError as e:
            logger.error(f"[{name}] {render_error(e)}")
        except Exception as e:
            logger.error(f"[{name}] Unexpected error: {e}")

def run_monitor() -> int:
    stop_event = threading.Event()

    def signal_handler(sig, frame):
        sig_name = signal.Signals(sig).name
        main_logger.info(f"Received signal {sig_name}. Initiating graceful shutdown...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    main_logger.info(
        f"Starting monitor mode (interval: {settings.MONITOR_INTERVAL:g}s, overrun: {settings.MONITOR_OVERRUN})"
    )
    ticker = Ticker(settings.MONITOR_INTERVAL, run_cycle, overrun=settings.MONITOR_OVERRUN, stop_event=stop_event)
    ticker.run()
    main_logger.info("Monitor stopped.")
    return 0

def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    selected = [
        value for value in (args.port, args.docker, args.nginx, args.users, args.time, args.command)
        if value is not None
    ]
    if len(selected) != 1:
        # parser.error()는 사용법을 출력하고 종료 코드 2로 종료
        parser.error("exactly one option is required. Use -h or --help for usage information.")

    try:
        if args.command == "monitor":
            return run_monitor()

        try:
            print(render_selection(args))
        except InvalidInput as e:
            parser.print_usage(sys.stderr)
            print(render_error(e), file=sys.stderr)
            return 2
        except NotFound as e:
            # 찾는 대상이 없는 것은 빈 결과와 같으므로 성공으로 종료
            print(render_error(e), file=sys.stderr)
            return 0
        except InspectorError as e:
            main_logger.debug(f"{type(e).__name__}: {e}")
            print(render_error(e), file=sys.stderr)
            return 1
        except Exception as e:
            main_logger.error(f"Unexpected error: {e}")
            print(render_error(e), file=sys.stderr)
            return 1
        return 0
    except KeyboardInterrupt:
        return 130
    finally:
        shutdown_logging()

if __name__ == "__main__":
    sys.exit(main())
