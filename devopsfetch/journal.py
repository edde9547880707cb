import json
import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from config.settings import settings
from devopsfetch.commands import CommandRunner
from devopsfetch.errors import InvalidTimeFormat
from devopsfetch.logger import journal_logger
from devopsfetch.models import ActivityEntry, ActivityWindow

# -t 인자로 허용하는 형식 (ISO-8601은 별도로 허용)
TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")

JOURNAL_COMMAND = ["journalctl", "--no-pager", "-q", "-o", "json"]

def parse_time(text: str, tz: tzinfo) -> datetime:
    """시각 문자열을 타임존이 있는 datetime으로 변환"""
    value = (text or "").strip()
    parsed: Optional[datetime] = None
    for fmt in TIME_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidTimeFormat(
                f"Invalid time '{text}'. Expected 'YYYY-MM-DD HH:MM:SS', 'YYYY-MM-DD HH:MM', 'YYYY-MM-DD' or ISO-8601"
            )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed

def parse_entry(line: str, tz: tzinfo) -> Optional[ActivityEntry]:
    """journalctl -o json 한 줄을 ActivityEntry로 변환 (형식이 다르면 None)"""
    try:
        record: Dict[str, Any] = json.loads(line)
        micros = int(record["__REALTIME_TIMESTAMP"])
    except (ValueError, KeyError, TypeError):
        return None

    message = record.get("MESSAGE")
    # 바이너리 메시지는 바이트 배열로 전달됨
    if isinstance(message, list):
        message = bytes(b for b in message if isinstance(b, int) and 0 <= b < 256).decode("utf-8", errors="replace")

    return ActivityEntry(
        timestamp=(datetime.fromtimestamp(micros // 1_000_000, timezone.utc) + timedelta(microseconds=micros % 1_000_000)).astimezone(tz),
        hostname=str(record.get("_HOSTNAME", "")),
        identifier=str(record.get("SYSLOG_IDENTIFIER") or record.get("_COMM") or ""),
        message=str(message or "")
    )

class ActivityLogQuery:
    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        sample_size: Optional[int] = None,
        logger: logging.Logger = journal_logger
    ) -> None:
        self.runner = runner or CommandRunner(logger=logger)
        self.sample_size = settings.JOURNAL_SAMPLE_SIZE if sample_size is None else sample_size
        self.tz = settings.TZINFO
        self.logger = logger

    def bounds(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """저널에 보관된 가장 오래된/최신 항목의 시각"""
        first = parse_entry(self.runner.first_line(JOURNAL_COMMAND), self.tz)
        output = self.runner.run(JOURNAL_COMMAND + ["-n", "1"], ok_codes=(0, 1))
        last_lines = [line for line in output.splitlines() if line.strip()]
        last = parse_entry(last_lines[-1], self.tz) if last_lines else None
        return (first.timestamp if first else None, last.timestamp if last else None)

    def query_range(self, start_text: str, end_text: str) -> ActivityWindow:
        """
        요청 구간을 저널 보관 구간으로 잘라(clamping) 항목을 조회.
        겹치는 구간이 없으면 빈 결과를 반환하며 오류가 아닙니다.
        """
        # 저널 접근 전에 입력 검증
        requested_start = parse_time(start_text, self.tz)
        requested_end = parse_time(end_text, self.tz)
        window = ActivityWindow(requested_start=requested_start, requested_end=requested_end)

        earliest, latest = self.bounds()
        if earliest is None or latest is None:
            self.logger.info("Journal contains no entries")
            return window

        window.earliest = earliest
        window.latest = latest
        window.effective_start = max(requested_start, earliest)
        window.effective_end = min(requested_end, latest)

        if window.effective_start > window.effective_end:
            self.logger.debug("Requested range does not overlap retained journal range")
            return window

        since = math.floor(window.effective_start.timestamp())
        until = math.ceil(window.effective_end.timestamp())
        self.logger.debug(f"Querying journal from @{since} to @{until}...")
        lines = self.runner.stream_lines(JOURNAL_COMMAND + ["--since", f"@{since}", "--until", f"@{until}"], ok_codes=(0, 1))

        entries: List[ActivityEntry] = []
        total = 0
        # 전체 출력을 메모리에 올리지 않고 한 줄씩 집계
        for line in lines:
            if not line.strip():
                continue
            entry = parse_entry(line, self.tz)
            if entry is None:
                continue
            if not window.effective_start <= entry.timestamp <= window.effective_end:
                continue
            total += 1
            if len(entries) < self.sample_size:
                entries.append(entry)

        window.total = total
        window.entries = entries
        return window
