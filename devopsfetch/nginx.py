import logging
import os
import re
from typing import List, Optional, Tuple

from config.settings import settings
from devopsfetch.errors import VirtualHostNotFound
from devopsfetch.logger import nginx_logger
from devopsfetch.models import VirtualHost, VirtualHostListing

"""
Nginx 사이트 설정 조회.

각 설정 파일을 하나의 단위로 읽어 server { ... } 블록을 분리하고,
같은 블록 안의 server_name / listen / proxy_pass 지시어끼리만 연결합니다.
문법을 완전히 해석하지는 않습니다 (include, 변수 등은 무시).
"""

SERVER_BLOCK_RE = re.compile(r'\bserver\s*\{')
SERVER_NAME_RE = re.compile(r'\bserver_name\s+([^;]+);')
LISTEN_RE = re.compile(r'\blisten\s+([^;]+);')
PROXY_PASS_RE = re.compile(r'\bproxy_pass\s+([^;]+);')
COMMENT_RE = re.compile(r'#[^\n]*')

def strip_comments(text: str) -> str:
    """주석을 같은 길이의 공백으로 바꿈 (원문과 문자 위치가 같음)"""
    return COMMENT_RE.sub(lambda m: " " * len(m.group()), text)

def server_block_spans(text: str) -> List[Tuple[int, int]]:
    """중괄호 짝을 맞춰 server 블록의 (시작, 끝) 위치를 추출"""
    spans = []
    pos = 0
    while True:
        match = SERVER_BLOCK_RE.search(text, pos)
        if not match:
            break
        depth = 0
        end = len(text)
        for index in range(match.end() - 1, len(text)):
            char = text[index]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = index + 1
                    break
        spans.append((match.start(), end))
        pos = end
    return spans

def server_blocks(text: str) -> List[str]:
    return [text[start:end] for start, end in server_block_spans(text)]

def listen_port(value: str) -> str:
    """listen 지시어 값에서 포트만 추출 ('443 ssl' -> '443', '[::]:80' -> '80')"""
    address = value.split()[0]
    if address.startswith("unix:"):
        return address
    if address.isdigit():
        return address
    _, _, port = address.rpartition(":")
    if port.isdigit():
        return port
    # 주소만 지정된 경우 기본 포트
    return "80"

def parse_config(text: str, config_file: str) -> List[VirtualHost]:
    """설정 파일 하나에서 가상 호스트 목록을 생성"""
    hosts = []
    for block in server_blocks(strip_comments(text)):
        ports: List[str] = []
        for value in LISTEN_RE.findall(block):
            port = listen_port(value)
            if port not in ports:
                ports.append(port)

        proxy_match = PROXY_PASS_RE.search(block)
        proxy_pass = proxy_match.group(1).strip() if proxy_match else None

        for names in SERVER_NAME_RE.findall(block):
            for domain in names.split():
                # 기본 서버용 이름은 제외
                if domain in ("_", '""'):
                    continue
                hosts.append(VirtualHost(
                    domain=domain,
                    listen=list(ports) or ["80"],
                    proxy_pass=proxy_pass,
                    config_file=config_file
                ))
    return hosts

class VirtualHostInspector:
    def __init__(self, config_dirs: Optional[List[str]] = None, logger: logging.Logger = nginx_logger) -> None:
        self.config_dirs = config_dirs if config_dirs is not None else settings.NGINX_CONFIG_DIRS
        self.logger = logger

    def config_files(self) -> List[str]:
        """활성화된 사이트 설정 파일 목록"""
        files = []
        for directory in self.config_dirs:
            if not os.path.isdir(directory):
                self.logger.debug(f"Nginx config directory not found: {directory}")
                continue
            for name in sorted(os.listdir(directory)):
                path = os.path.join(directory, name)
                if name.startswith(".") or not os.path.isfile(path):
                    continue
                files.append(path)
        return files

    def _read(self, path: str) -> Optional[str]:
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as file:
                return file.read()
        except OSError as e:
            self.logger.warning(f"Unable to read {path}: {e}")
            return None

    def list_virtual_hosts(self) -> VirtualHostListing:
        files = self.config_files()
        listing = VirtualHostListing(config_files=files)
        for path in files:
            text = self._read(path)
            if text is None:
                continue
            listing.hosts.extend(parse_config(text, path))
        self.logger.debug(f"Found {len(listing.hosts)} virtual hosts in {len(files)} files")
        return listing

    def describe_virtual_host(self, domain: str) -> str:
        """도메인이 선언된 server_name 지시어가 있는 줄부터 설정 일부를 반환"""
        for path in self.config_files():
            text = self._read(path)
            if text is None:
                continue
            stripped = strip_comments(text)
            for start, end in server_block_spans(stripped):
                for match in SERVER_NAME_RE.finditer(stripped, start, end):
                    if domain not in match.group(1).split():
                        continue
                    # 한 줄에 블록 전체가 있어도 지시어가 있는 줄을 기준으로 발췌
                    index = text.count("\n", 0, match.start())
                    lines = [line.rstrip("\r") for line in text.split("\n")]
                    excerpt = lines[index:index + 1 + settings.NGINX_EXCERPT_LINES]
                    return f"{path}:\n" + "\n".join(excerpt)
        raise VirtualHostNotFound(f"No Nginx server block declares domain: {domain}")
