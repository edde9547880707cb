import grp
import logging
import pwd
from datetime import datetime
from typing import List, Optional

from config.settings import settings
from devopsfetch.commands import CommandRunner
from devopsfetch.errors import AccountNotFound, InspectorError
from devopsfetch.logger import users_logger
from devopsfetch.models import LOGIN_UNKNOWN, NO_LOGIN_RECORDED, Account

LASTLOG_TIME_FORMAT = "%a %b %d %H:%M:%S %z %Y"

def parse_lastlog(output: str) -> str:
    """
    `lastlog -u <user>` 출력에서 마지막 로그인 시각을 추출.

    Username         Port     From             Latest
    alice            pts/0    10.0.0.5         Mon Oct 14 10:00:00 +0000 2024
    """
    rows = [line for line in output.splitlines() if line.strip() and not line.startswith("Username")]
    if not rows:
        return LOGIN_UNKNOWN
    row = rows[0]
    if "**Never logged in**" in row:
        return NO_LOGIN_RECORDED

    # Port/From 칸은 비어 있을 수 있으므로 뒤에서 6개 토큰을 사용
    tokens = row.split()
    if len(tokens) < 7:
        return LOGIN_UNKNOWN
    try:
        latest = datetime.strptime(" ".join(tokens[-6:]), LASTLOG_TIME_FORMAT)
    except ValueError:
        return LOGIN_UNKNOWN
    return latest.strftime("%Y-%m-%d %H:%M:%S")

class AccountInspector:
    def __init__(
        self,
        uid_min: Optional[int] = None,
        denylist: Optional[List[str]] = None,
        runner: Optional[CommandRunner] = None,
        logger: logging.Logger = users_logger
    ) -> None:
        self.uid_min = settings.UID_MIN if uid_min is None else uid_min
        self.denylist = set(settings.USER_DENYLIST if denylist is None else denylist)
        self.runner = runner or CommandRunner(logger=logger)
        self.logger = logger

    def is_regular(self, entry: pwd.struct_passwd) -> bool:
        return entry.pw_uid >= self.uid_min and entry.pw_name not in self.denylist

    def last_login(self, username: str) -> str:
        """마지막 로그인 시각. 기록이 없거나 조회 실패 시 명시적인 값 반환."""
        try:
            output = self.runner.run(["lastlog", "-u", username])
        except InspectorError as e:
            self.logger.warning(f"Last login lookup failed for {username}: {e}")
            return LOGIN_UNKNOWN

        value = parse_lastlog(output)
        if value == LOGIN_UNKNOWN:
            self.logger.debug(f"Unparseable lastlog output for {username}: {output!r}")
        return value

    def list_accounts(self) -> List[Account]:
        """일반 사용자 계정 목록 (uid 오름차순)"""
        self.logger.debug(f"Listing accounts with uid >= {self.uid_min}...")
        entries = sorted((e for e in pwd.getpwall() if self.is_regular(e)), key=lambda e: e.pw_uid)
        return [
            Account(
                username=e.pw_name,
                uid=e.pw_uid,
                gid=e.pw_gid,
                home=e.pw_dir,
                last_login=self.last_login(e.pw_name)
            )
            for e in entries
        ]

    def describe_account(self, username: str) -> Account:
        """계정 상세 정보 (그룹 포함)"""
        try:
            entry = pwd.getpwnam(username)
        except KeyError:
            raise AccountNotFound(f"No such user: {username}")

        return Account(
            username=entry.pw_name,
            uid=entry.pw_uid,
            gid=entry.pw_gid,
            home=entry.pw_dir,
            last_login=self.last_login(entry.pw_name),
            shell=entry.pw_shell,
            gecos=entry.pw_gecos,
            groups=self._groups(entry)
        )

    def _groups(self, entry: pwd.struct_passwd) -> List[str]:
        groups = []
        try:
            groups.append(grp.getgrgid(entry.pw_gid).gr_name)
        except KeyError:
            groups.append(str(entry.pw_gid))
        for group in grp.getgrall():
            if entry.pw_name in group.gr_mem and group.gr_name not in groups:
                groups.append(group.gr_name)
        return groups
