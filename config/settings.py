import os
from datetime import datetime, tzinfo
from typing import Any, Dict, List
from zoneinfo import ZoneInfo
from dotenv import load_dotenv
import yaml
from devopsfetch.logger import config_logger

"""
DOCKER_HOST : 도커 데몬과 통신하기 위한 URL (비어 있으면 로컬 소켓 사용)
TIMEZONE, TZINFO : -t 인자와 저널 타임스탬프를 해석할 타임존 (TZ 가 없으면 호스트 로컬 타임존)
COMMAND_TIMEOUT : 외부 명령 1회 실행 제한 시간(초)
DOCKER_* : 도커 목록 출력 제한
NGINX_* : 사이트 설정 디렉토리와 발췌 줄 수
UID_MIN, USER_DENYLIST : 일반 사용자 판별 기준
JOURNAL_SAMPLE_SIZE : 활동 보고서에 표시할 최대 항목 수
MONITOR_INTERVAL, MONITOR_OVERRUN : 모니터 모드 주기와 지연 처리 정책
"""

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

OVERRUN_POLICIES = ("skip", "queue")

# 호스트 로컬 타임존 파일
LOCALTIME_PATH = "/etc/localtime"

class Settings:
    # Type Hints
    DOCKER_HOST: str
    TIMEZONE: str
    TZINFO: tzinfo
    COMMAND_TIMEOUT: float
    DOCKER_TIMEOUT: int
    DOCKER_MAX_IMAGES: int
    DOCKER_MAX_CONTAINERS: int
    DOCKER_COMMAND_WIDTH: int
    DOCKER_NAME_WIDTH: int
    NGINX_CONFIG_DIRS: List[str]
    NGINX_EXCERPT_LINES: int
    UID_MIN: int
    USER_DENYLIST: List[str]
    JOURNAL_SAMPLE_SIZE: int
    MONITOR_INTERVAL: float
    MONITOR_OVERRUN: str

    def __init__(self) -> None:
        """설정 초기화 및 로드"""
        env_file = os.getenv("ENV_FILE_PATH", os.path.join(BASE_DIR, "config", ".env"))
        yaml_file = os.getenv("CONFIG_FILE_PATH", os.path.join(BASE_DIR, "config", "config.yaml"))

        config_logger.debug("Loading configuration...")

        # 설정 로드
        self._load_env(env_file)
        self._load_yaml_config(yaml_file)

    def _load_env(self, env_file: str) -> None:
        """시스템 환경 변수를 1순위로, 부족한 정보는 .env에서 보충."""

        # load_dotenv는 이미 설정된 시스템 환경 변수를 덮어쓰지 않으며, 파일이 없어도 예외가 없습니다.
        load_dotenv(env_file)
        self.DOCKER_HOST = os.getenv("DOCKER_HOST", "")

        # 타임존 설정 (TZ 환경변수 확인, 없거나 유효하지 않으면 호스트 로컬 타임존)
        tz_env = os.getenv("TZ", "")
        if tz_env:
            try:
                self.TZINFO = ZoneInfo(tz_env)
                self.TIMEZONE = tz_env
            except Exception:
                config_logger.warning(f"Invalid timezone: {tz_env}. Falling back to local time.")
                self._load_local_timezone()
        else:
            self._load_local_timezone()
        config_logger.debug(f"Timezone set to: {self.TIMEZONE}")

    def _load_local_timezone(self) -> None:
        """호스트의 /etc/localtime 을 읽고, 없으면 현재 UTC 오프셋을 사용."""
        try:
            with open(LOCALTIME_PATH, "rb") as file:
                self.TZINFO = ZoneInfo.from_file(file, key="localtime")
            self.TIMEZONE = "localtime"
        except (OSError, ValueError) as e:
            config_logger.debug(f"Cannot read {LOCALTIME_PATH}: {e}")
            self.TZINFO = datetime.now().astimezone().tzinfo
            self.TIMEZONE = str(self.TZINFO)

    def _load_yaml_config(self, yaml_file: str) -> None:
        """.yaml 파일에서 설정을 로드. 파일이 없으면 기본값 사용."""
        config: Dict[str, Any] = {}
        if os.path.exists(yaml_file):
            with open(yaml_file, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file) or {}
        else:
            config_logger.warning(f"YAML configuration file '{os.path.abspath(yaml_file)}' not found. Using defaults.")

        commands_config = config.get("commands", {}) or {}
        docker_config = config.get("docker", {}) or {}
        nginx_config = config.get("nginx", {}) or {}
        users_config = config.get("users", {}) or {}
        journal_config = config.get("journal", {}) or {}
        monitor_config = config.get("monitor", {}) or {}

        self.COMMAND_TIMEOUT = self._positive(commands_config, "timeout", 30, "commands.timeout")

        self.DOCKER_TIMEOUT = int(self._positive(docker_config, "timeout", 10, "docker.timeout"))
        self.DOCKER_MAX_IMAGES = int(self._positive(docker_config, "max_images", 20, "docker.max_images"))
        self.DOCKER_MAX_CONTAINERS = int(self._positive(docker_config, "max_containers", 20, "docker.max_containers"))
        self.DOCKER_COMMAND_WIDTH = int(self._positive(docker_config, "command_width", 30, "docker.command_width"))
        self.DOCKER_NAME_WIDTH = int(self._positive(docker_config, "name_width", 25, "docker.name_width"))

        self.NGINX_CONFIG_DIRS = list(nginx_config.get("config_dirs") or ["/etc/nginx/sites-enabled"])
        self.NGINX_EXCERPT_LINES = int(self._positive(nginx_config, "excerpt_lines", 20, "nginx.excerpt_lines"))

        # uid 0은 허용하지 않으므로 양수 검사로 충분
        self.UID_MIN = int(self._positive(users_config, "uid_min", 1000, "users.uid_min"))
        self.USER_DENYLIST = list(users_config.get("denylist") or ["nobody", "nfsnobody"])

        self.JOURNAL_SAMPLE_SIZE = int(self._positive(journal_config, "sample_size", 50, "journal.sample_size"))

        self.MONITOR_INTERVAL = self._positive(monitor_config, "interval", 300, "monitor.interval")
        self.MONITOR_OVERRUN = str(monitor_config.get("overrun", "skip")).lower()

        # 모니터 정책 유효성 검사
        if self.MONITOR_OVERRUN not in OVERRUN_POLICIES:
            error_msg = f"Invalid monitor.overrun '{self.MONITOR_OVERRUN}'. Expected one of {', '.join(OVERRUN_POLICIES)}"
            config_logger.error(error_msg)
            raise ValueError(error_msg)

    def _positive(self, section: Dict[str, Any], key: str, default: float, label: str) -> float:
        """양수 설정값을 읽고 검증"""
        value = section.get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = 0
        if number <= 0:
            error_msg = f"Invalid value for {label}: {value!r} (must be a positive number)"
            config_logger.error(error_msg)
            raise ValueError(error_msg)
        return number

# 전역 설정 인스턴스 생성
settings = Settings()
