import logging
import os
import shutil
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests
from docker import DockerClient, from_env
from docker.errors import DockerException, NotFound

from config.settings import settings
from devopsfetch.errors import ContainerNotFound, EngineNotInstalled, EngineNotRunning
from devopsfetch.logger import docker_logger
from devopsfetch.models import ContainerDetail, ContainerSummary, ImageSummary, MountInfo

DOCKER_SOCKET = "/var/run/docker.sock"

def truncate(text: str, width: int) -> str:
    """표시 폭을 넘는 문자열은 말줄임표로 자름"""
    if len(text) <= width:
        return text
    return text[:max(width - 1, 0)] + "…"

def human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "kB", "MB", "GB"):
        if value < 1000:
            return f"{value:.0f}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1000
    return f"{value:.1f}TB"

class ContainerInspector:
    def __init__(self, docker_host: Optional[str] = None, logger: logging.Logger = docker_logger) -> None:
        """Docker 조회기 초기화 (연결은 조회 시점에 수행)"""
        self.docker_host = settings.DOCKER_HOST if docker_host is None else docker_host
        self.logger = logger
        self.client: Optional[DockerClient] = None

    def connect(self) -> DockerClient:
        """
        사전 조건 검사 후 Docker 데몬에 연결.
        설치되지 않았으면 EngineNotInstalled, 응답이 없으면 EngineNotRunning.
        """
        if self.client is not None:
            return self.client

        if not self.docker_host and not shutil.which("docker") and not os.path.exists(DOCKER_SOCKET):
            raise EngineNotInstalled("Docker is not installed (no docker CLI, no daemon socket, no DOCKER_HOST)")

        target = self.docker_host or "local socket"
        self.logger.debug(f"Connecting to Docker daemon at {target}...")
        try:
            if self.docker_host:
                client = from_env(environment={"DOCKER_HOST": self.docker_host}, timeout=settings.DOCKER_TIMEOUT)
            else:
                client = from_env(timeout=settings.DOCKER_TIMEOUT)
            # 연결 테스트
            client.ping()
        except (DockerException, requests.exceptions.RequestException) as e:
            self.logger.debug(f"Docker connection error: {e}")
            raise EngineNotRunning(f"Docker daemon is not running or unreachable at {target}")

        self.client = client
        return client

    def disconnect(self) -> None:
        """Docker 클라이언트 연결 종료"""
        if self.client is not None:
            self.logger.debug("Disconnecting from Docker daemon...")
            self.client.close()
            self.client = None

    def list_containers(self) -> Tuple[List[ImageSummary], List[ContainerSummary]]:
        """최근 이미지와 컨테이너 목록을 각각 최대 개수만큼 반환"""
        client = self.connect()
        self.logger.debug("Listing Docker images and containers...")
        try:
            images = client.images.list()
            containers = client.containers.list(all=True, sparse=True, limit=settings.DOCKER_MAX_CONTAINERS)
        except (DockerException, requests.exceptions.RequestException) as e:
            self.disconnect()
            raise EngineNotRunning(f"Docker daemon stopped responding: {e}")

        # 이미지는 생성 시각 기준 최신순
        image_attrs = sorted((image.attrs for image in images), key=lambda a: a.get("Created", ""), reverse=True)
        image_list = [self._image_summary(attrs) for attrs in image_attrs[:settings.DOCKER_MAX_IMAGES]]

        container_list = [self._container_summary(c.attrs) for c in containers[:settings.DOCKER_MAX_CONTAINERS]]
        return image_list, container_list

    def _image_summary(self, attrs: Dict[str, Any]) -> ImageSummary:
        tags = attrs.get("RepoTags") or []
        repository, tag = "<none>", "<none>"
        if tags and tags[0] != "<none>:<none>":
            # 레지스트리 포트(host:5000/img)와 태그 구분
            name, _, maybe_tag = tags[0].rpartition(":")
            if name and "/" not in maybe_tag:
                repository, tag = name, maybe_tag
            else:
                repository = tags[0]

        image_id = str(attrs.get("Id", "")).split(":")[-1][:12]
        created = str(attrs.get("Created", ""))[:19].replace("T", " ")
        return ImageSummary(
            image_id=image_id,
            repository=repository,
            tag=tag,
            created=created,
            size=human_size(int(attrs.get("Size") or 0))
        )

    def _container_summary(self, attrs: Dict[str, Any]) -> ContainerSummary:
        names = attrs.get("Names") or [""]
        created_ts = attrs.get("Created")
        created = ""
        if isinstance(created_ts, (int, float)):
            created = datetime.fromtimestamp(created_ts, settings.TZINFO).strftime("%Y-%m-%d %H:%M")

        return ContainerSummary(
            container_id=str(attrs.get("Id", ""))[:12],
            image=str(attrs.get("Image", "")),
            command=truncate(str(attrs.get("Command", "")), settings.DOCKER_COMMAND_WIDTH),
            created=created,
            status=str(attrs.get("Status", "")),
            ports=self._format_ports(attrs.get("Ports") or []),
            name=truncate(names[0].lstrip("/"), settings.DOCKER_NAME_WIDTH)
        )

    def _format_ports(self, ports: List[Dict[str, Any]]) -> str:
        """포트 정보 추출 (IPv6 제외)"""
        ports_set = set()
        for binding in ports:
            host_ip = binding.get("IP", "")
            if ":" in host_ip:
                continue
            private_port = binding.get("PrivatePort")
            proto = binding.get("Type", "tcp")
            public_port = binding.get("PublicPort")
            if public_port:
                ports_set.add(f"{public_port}→{private_port}/{proto}")
            else:
                # 매핑 없이 노출만 된 경우
                ports_set.add(f"{private_port}/{proto}")
        return ", ".join(sorted(ports_set))

    def describe_container(self, name: str) -> ContainerDetail:
        """컨테이너 이름(또는 ID)으로 상세 정보 조회"""
        client = self.connect()
        self.logger.debug(f"Getting info for container: {name}")
        try:
            container = client.containers.get(name)
        except NotFound:
            raise ContainerNotFound(f"No such container: {name}")
        except (DockerException, requests.exceptions.RequestException) as e:
            self.disconnect()
            raise EngineNotRunning(f"Docker daemon stopped responding: {e}")

        attrs = container.attrs
        state = attrs.get("State") or {}
        mounts = [
            MountInfo(
                type=str(m.get("Type", "")),
                source=str(m.get("Source", "")),
                destination=str(m.get("Destination", "")),
                mode=str(m.get("Mode", "")),
                rw=bool(m.get("RW", False))
            )
            for m in attrs.get("Mounts") or []
        ]

        return ContainerDetail(
            container_id=str(attrs.get("Id", "")),
            name=str(attrs.get("Name", "")).lstrip("/"),
            state=str(state.get("Status", "")) if isinstance(state, dict) else str(state),
            image=str((attrs.get("Config") or {}).get("Image") or attrs.get("Image", "")),
            mounts=mounts
        )
