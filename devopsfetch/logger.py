import logging
import os
import sys
from typing import List, TextIO

# 로그 레벨 설정
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 유효하지 않은 레벨이면 INFO로 설정
if LOG_LEVEL not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
    print(f"Warning: Invalid LOG_LEVEL '{LOG_LEVEL}'. Defaulting to INFO.", file=sys.stderr)
    LOG_LEVEL = "INFO"

# 로그 디렉토리 생성 (LOG_DIR 환경 변수가 우선)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.getenv("LOG_DIR") or os.path.join(BASE_DIR, 'logs')
if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

# 모니터 모드 보고서가 계속 덧붙여지는 단일 파일
LOG_FILE_PATH = os.path.join(LOG_DIR, "devopsfetch.log")

class ColoredFormatter(logging.Formatter):
    """콘솔 출력용 컬러 로그 포맷터"""

    # 로그 레벨별 색상 (ANSI 코드)
    LOG_COLORS = {
        logging.DEBUG: '\x1b[40;1m',     # Black on gray
        logging.INFO: '\x1b[34;1m',      # Blue
        logging.WARNING: '\x1b[33;1m',   # Yellow
        logging.ERROR: '\x1b[31m',       # Red
        logging.CRITICAL: '\x1b[41m',    # Red Background
    }

    # 로거 이름별 색상
    NAME_COLORS = {
        "Main": '\x1b[35m',      # Magenta
        "Monitor": '\x1b[35;1m', # Bright Magenta
        "Ports": '\x1b[32m',     # Green
        "Docker": '\x1b[36m',    # Cyan
        "Nginx": '\x1b[32;1m',   # Bright Green
        "Users": '\x1b[33m',     # Yellow
        "Journal": '\x1b[36;1m', # Bright Cyan
        "Config": '\x1b[34m'     # Blue
    }

    RESET = '\x1b[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.LOG_COLORS.get(record.levelno, '')
        name_color = self.NAME_COLORS.get(record.name, self.RESET)

        asctime = self.formatTime(record, datefmt="%H:%M:%S")
        levelname = f"{color}{record.levelname:<8}{self.RESET}"
        name = f"{name_color}{record.name:<8}{self.RESET}"
        msg = record.getMessage()

        return f"\x1b[30;1m{asctime}{self.RESET} {levelname} {name} {msg}"

class FileFormatter(logging.Formatter):
    """파일 저장용 일반 텍스트 로그 포맷터"""

    def format(self, record: logging.LogRecord) -> str:
        asctime = self.formatTime(record, datefmt="%Y-%m-%d %H:%M:%S")
        return f"{asctime} {record.levelname:<8} {record.name:<8} {record.getMessage()}"

_loggers: List[logging.Logger] = []

def setup_logger(name: str, stream: TextIO = sys.stderr) -> logging.Logger:
    """
    로거 초기화 및 설정.
    컴포넌트 로거는 stderr로 출력하여 stdout의 보고서와 섞이지 않도록 합니다.
    """
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)
    logger.propagate = False

    if not logger.handlers:
        # 파일 핸들러 (append 모드)
        file_handler = logging.FileHandler(LOG_FILE_PATH, mode="a", encoding="utf-8")
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

        # 콘솔 핸들러
        console_handler = logging.StreamHandler(stream)
        console_handler.setFormatter(ColoredFormatter())
        logger.addHandler(console_handler)

    if logger not in _loggers:
        _loggers.append(logger)
    return logger

def shutdown_logging() -> None:
    """
    모든 핸들러를 flush 후 닫음.
    핸들러는 로거에 남겨 두며, 파일 핸들러는 다음 기록 시 파일을 다시 엽니다.
    """
    for logger in _loggers:
        for handler in logger.handlers:
            handler.flush()
            handler.close()

# 로거 인스턴스 생성
main_logger = setup_logger("Main")
config_logger = setup_logger("Config")
ports_logger = setup_logger("Ports")
docker_logger = setup_logger("Docker")
nginx_logger = setup_logger("Nginx")
users_logger = setup_logger("Users")
journal_logger = setup_logger("Journal")
# 모니터 모드 보고서 출력용 (콘솔 stdout + 로그 파일)
monitor_logger = setup_logger("Monitor", stream=sys.stdout)
