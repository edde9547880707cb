# tests/conftest.py
import os
import tempfile

# 모듈 import 전에 로그 디렉토리와 타임존을 고정
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="devopsfetch-logs-"))
os.environ["TZ"] = "UTC"
os.environ["ENV_FILE_PATH"] = os.devnull
