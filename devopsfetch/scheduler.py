import logging
import threading
import time
from typing import Callable, Optional

from devopsfetch.logger import monitor_logger

class Ticker:
    """
    고정 주기로 작업을 실행하는 스케줄러.

    작업은 항상 순차 실행되며 겹치지 않습니다.
    작업이 주기보다 오래 걸린 경우(overrun):
      - skip  : 놓친 주기는 버리고 다음 미래 주기에 맞춰 실행
      - queue : 끝나자마자 바로 다음 작업을 실행
    """

    def __init__(
        self,
        interval: float,
        task: Callable[[], None],
        overrun: str = "skip",
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger = monitor_logger
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Ticker interval must be positive, got {interval}")
        if overrun not in ("skip", "queue"):
            raise ValueError(f"Unknown overrun policy: {overrun}")
        self.interval = interval
        self.task = task
        self.overrun = overrun
        self.stop_event = stop_event or threading.Event()
        self.clock = clock
        self.logger = logger
        self.runs = 0
        self.skipped = 0

    def stop(self) -> None:
        self.stop_event.set()

    def run(self, max_runs: Optional[int] = None) -> None:
        """중지 요청(또는 max_runs)까지 작업을 반복 실행"""
        next_run = self.clock()
        while not self.stop_event.is_set():
            delay = next_run - self.clock()
            # wait()는 중지 요청 시 즉시 True를 반환
            if delay > 0 and self.stop_event.wait(delay):
                break

            try:
                self.task()
            except Exception as e:
                self.logger.error(f"Scheduled task failed: {e}")
            self.runs += 1

            if max_runs is not None and self.runs >= max_runs:
                break

            next_run += self.interval
            now = self.clock()
            if now <= next_run:
                continue

            if self.overrun == "skip":
                missed = int((now - next_run) // self.interval) + 1
                next_run += missed * self.interval
                self.skipped += missed
                self.logger.warning(f"Cycle overran the {self.interval:g}s interval; skipped {missed} tick(s)")
            else:
                self.logger.warning(f"Cycle overran the {self.interval:g}s interval; starting next cycle immediately")
                next_run = now
