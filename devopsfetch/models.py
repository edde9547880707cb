from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

"""
조회 결과 모델. 모두 외부 시스템 상태의 읽기 전용 스냅샷이며 매 호출마다 새로 계산됩니다.

Attributes (ContainerSummary):
    container_id (str): 도커 컨테이너 ID (short)
    image (str): 이미지 이름
    command (str): 실행 명령 (표시 폭으로 잘림)
    created (str): 생성 시각
    status (str): 도커 컨테이너 상태 문자열
    ports (str): 포트 매핑 정보
    name (str): 도커 컨테이너 이름 (표시 폭으로 잘림)
"""

# 마지막 로그인 값은 항상 명시적인 문자열
NO_LOGIN_RECORDED = "no login recorded"
LOGIN_UNKNOWN = "unknown"

@dataclass
class PortBinding:
    port: int
    protocol: str
    process: Optional[str] = None

@dataclass
class ImageSummary:
    image_id: str
    repository: str
    tag: str
    created: str
    size: str

@dataclass
class ContainerSummary:
    container_id: str
    image: str
    command: str
    created: str
    status: str
    ports: str
    name: str

@dataclass
class MountInfo:
    type: str
    source: str
    destination: str
    mode: str
    rw: bool

@dataclass
class ContainerDetail:
    container_id: str
    name: str
    state: str
    image: str
    mounts: List[MountInfo] = field(default_factory=list)

@dataclass
class VirtualHost:
    domain: str
    listen: List[str] = field(default_factory=list)
    proxy_pass: Optional[str] = None
    config_file: str = ""

@dataclass
class VirtualHostListing:
    config_files: List[str] = field(default_factory=list)
    hosts: List[VirtualHost] = field(default_factory=list)

@dataclass
class Account:
    username: str
    uid: int
    gid: int
    home: str
    last_login: str = LOGIN_UNKNOWN
    shell: str = ""
    gecos: str = ""
    groups: List[str] = field(default_factory=list)

@dataclass
class ActivityEntry:
    timestamp: datetime
    hostname: str
    identifier: str
    message: str

@dataclass
class ActivityWindow:
    requested_start: datetime
    requested_end: datetime
    effective_start: Optional[datetime] = None
    effective_end: Optional[datetime] = None
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    total: int = 0
    entries: List[ActivityEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total == 0
