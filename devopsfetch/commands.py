import logging
import shutil
import subprocess
import threading
import time
from typing import Iterator, Optional, Sequence

from config.settings import settings
from devopsfetch.errors import CommandFailed, DependencyMissing, DependencyUnreachable
from devopsfetch.logger import main_logger

class CommandRunner:
    """
    외부 명령 실행기.
    모든 호출은 제한 시간이 있으며, 실패는 오류 분류(errors)로 변환됩니다.
    """

    def __init__(self, timeout: Optional[float] = None, logger: logging.Logger = main_logger) -> None:
        self.timeout = timeout if timeout is not None else settings.COMMAND_TIMEOUT
        self.logger = logger

    def require(self, executable: str) -> str:
        """실행 파일 경로를 반환. 없으면 DependencyMissing."""
        path = shutil.which(executable)
        if not path:
            raise DependencyMissing(f"'{executable}' is not installed or not in PATH")
        return path

    def run(self, command: Sequence[str], ok_codes: Sequence[int] = (0,)) -> str:
        """명령을 실행하고 stdout을 반환"""
        self.require(command[0])
        self.logger.debug(f"Executing command: {' '.join(command)}")
        try:
            result = subprocess.run(list(command), capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            raise DependencyMissing(f"'{command[0]}' is not installed or not in PATH")
        except subprocess.TimeoutExpired:
            raise DependencyUnreachable(f"'{command[0]}' did not respond within {self.timeout:g}s")

        if result.returncode not in ok_codes:
            stderr = (result.stderr or "").strip()
            self.logger.debug(f"Command stderr: {stderr}")
            raise CommandFailed(f"'{command[0]}' exited with code {result.returncode}: {stderr or 'no error output'}")
        return result.stdout or ""

    def first_line(self, command: Sequence[str]) -> str:
        """
        명령 출력의 첫 줄만 읽고 프로세스를 종료.
        전체 출력을 기다리지 않으므로 큰 저널의 가장 오래된 항목 조회에 사용합니다.
        """
        self.require(command[0])
        self.logger.debug(f"Reading first line of: {' '.join(command)}")
        try:
            proc = subprocess.Popen(list(command), stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True)
        except FileNotFoundError:
            raise DependencyMissing(f"'{command[0]}' is not installed or not in PATH")

        timed_out = threading.Event()

        def _expire() -> None:
            timed_out.set()
            proc.kill()

        timer = threading.Timer(self.timeout, _expire)
        timer.start()
        try:
            line = proc.stdout.readline() if proc.stdout else ""
        finally:
            timer.cancel()
            proc.kill()
            proc.wait()
            if proc.stdout:
                proc.stdout.close()

        if timed_out.is_set():
            raise DependencyUnreachable(f"'{command[0]}' did not respond within {self.timeout:g}s")
        return line.rstrip("\n")

    def stream_lines(self, command: Sequence[str], ok_codes: Sequence[int] = (0,)) -> Iterator[str]:
        """
        명령 출력을 한 줄씩 전달하는 제너레이터.
        출력이 timeout 동안 없으면 프로세스를 종료하고 DependencyUnreachable 을 발생시킵니다.
        """
        self.require(command[0])
        self.logger.debug(f"Streaming output of: {' '.join(command)}")
        try:
            proc = subprocess.Popen(list(command), stdout=subprocess.PIPE, stderr=subprocess.DEVNULL, text=True)
        except FileNotFoundError:
            raise DependencyMissing(f"'{command[0]}' is not installed or not in PATH")

        timed_out = threading.Event()
        finished = threading.Event()
        last_activity = [time.monotonic()]

        def _watch() -> None:
            while not finished.wait(min(self.timeout, 1.0)):
                if time.monotonic() - last_activity[0] > self.timeout:
                    timed_out.set()
                    proc.kill()
                    return

        watchdog = threading.Thread(target=_watch, daemon=True)
        watchdog.start()
        try:
            for line in proc.stdout:
                last_activity[0] = time.monotonic()
                yield line.rstrip("\n")
            returncode = proc.wait()
        finally:
            finished.set()
            # 소비자가 중간에 멈춘 경우에도 프로세스를 남기지 않음
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stdout.close()

        if timed_out.is_set():
            raise DependencyUnreachable(f"'{command[0]}' produced no output within {self.timeout:g}s")
        if returncode not in ok_codes:
            raise CommandFailed(f"'{command[0]}' exited with code {returncode}")
