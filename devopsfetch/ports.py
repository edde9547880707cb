import logging
import socket
from typing import Dict, List, Optional, Set

import psutil

from devopsfetch.commands import CommandRunner
from devopsfetch.errors import InvalidInput
from devopsfetch.logger import ports_logger
from devopsfetch.models import PortBinding

class PortInspector:
    def __init__(self, runner: Optional[CommandRunner] = None, logger: logging.Logger = ports_logger) -> None:
        self.runner = runner or CommandRunner(logger=logger)
        self.logger = logger

    def list_ports(self) -> List[PortBinding]:
        """수신 대기 중인 포트를 포트 번호 오름차순으로 반환 (포트당 1개)"""
        self.logger.debug("Listing listening sockets...")
        try:
            connections = psutil.net_connections(kind="inet")
        except (psutil.AccessDenied, OSError) as e:
            # 소켓 테이블을 읽을 수 없으면 보고서 전체를 실패시키지 않음
            self.logger.warning(f"Unable to enumerate sockets: {e}")
            return []

        protocols: Dict[int, Set[str]] = {}
        pids: Dict[int, int] = {}

        for conn in connections:
            if not conn.laddr:
                continue
            if conn.type == socket.SOCK_STREAM:
                if conn.status != psutil.CONN_LISTEN:
                    continue
                proto = "tcp"
            elif conn.type == socket.SOCK_DGRAM:
                # 연결되지 않은 UDP 소켓만 수신 대기로 간주
                if conn.raddr:
                    continue
                proto = "udp"
            else:
                continue

            port = conn.laddr.port
            protocols.setdefault(port, set()).add(proto)
            if conn.pid and port not in pids:
                pids[port] = conn.pid

        bindings = []
        for port in sorted(protocols):
            bindings.append(PortBinding(
                port=port,
                protocol="/".join(sorted(protocols[port])),
                process=self._process_name(pids.get(port))
            ))
        return bindings

    def _process_name(self, pid: Optional[int]) -> Optional[str]:
        """PID로 프로세스 이름 조회 (실패하면 None)"""
        if not pid:
            return None
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None

    def describe_port(self, port: int) -> str:
        """특정 포트에 대한 lsof 원본 출력"""
        if not 1 <= port <= 65535:
            raise InvalidInput(f"Invalid port number: {port} (expected 1-65535)")

        self.logger.debug(f"Describing port {port}...")
        # lsof는 일치하는 항목이 없으면 1로 종료
        output = self.runner.run(["lsof", "-nP", "-i", f":{port}"], ok_codes=(0, 1))
        return output.rstrip()
