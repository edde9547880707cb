# tests/test_nginx.py
from unittest.mock import MagicMock

import pytest

from config.settings import settings
from devopsfetch.errors import VirtualHostNotFound
from devopsfetch.nginx import VirtualHostInspector, listen_port, parse_config, server_blocks
from devopsfetch.report import EMPTY, render_virtual_hosts

SITE_CONF = """\
server {
    listen 80;
    listen [::]:80;
    server_name example.com www.example.com;

    location / {
        proxy_pass http://127.0.0.1:3000;
    }
}

server {
    listen 443 ssl http2;
    server_name api.example.com;
    # proxy_pass http://commented-out;
    location /v1/ {
        proxy_set_header Host $host;
        proxy_pass http://127.0.0.1:8000;
    }
}
"""

DEFAULT_CONF = """\
server {
    listen 80 default_server;
    server_name _;
    root /var/www/html;
}
"""

@pytest.fixture
def sites(tmp_path):
    (tmp_path / "example").write_text(SITE_CONF)
    (tmp_path / "default").write_text(DEFAULT_CONF)
    return tmp_path

# --- parsing helpers ---
@pytest.mark.parametrize("value,expected", [
    ("80", "80"),
    ("443 ssl http2", "443"),
    ("[::]:8080", "8080"),
    ("127.0.0.1:81 default_server", "81"),
    ("localhost", "80"),
    ("unix:/run/app.sock", "unix:/run/app.sock"),
])
def test_listen_port(value, expected):
    assert listen_port(value) == expected

def test_server_blocks_handles_nested_braces():
    blocks = server_blocks(SITE_CONF)
    assert len(blocks) == 2
    assert blocks[0].startswith("server {")
    assert blocks[0].rstrip().endswith("}")
    assert "api.example.com" not in blocks[0]

def test_parse_config_associates_directives_per_block():
    hosts = {h.domain: h for h in parse_config(SITE_CONF, "/etc/nginx/sites-enabled/example")}
    assert set(hosts) == {"example.com", "www.example.com", "api.example.com"}
    assert hosts["example.com"].listen == ["80"]
    assert hosts["example.com"].proxy_pass == "http://127.0.0.1:3000"
    assert hosts["www.example.com"].proxy_pass == "http://127.0.0.1:3000"
    assert hosts["api.example.com"].listen == ["443"]
    # 주석 처리된 proxy_pass는 무시
    assert hosts["api.example.com"].proxy_pass == "http://127.0.0.1:8000"
    assert hosts["api.example.com"].config_file == "/etc/nginx/sites-enabled/example"

def test_parse_config_skips_default_server_name():
    assert parse_config(DEFAULT_CONF, "default") == []

# --- VirtualHostInspector ---
def test_list_virtual_hosts(sites):
    inspector = VirtualHostInspector(config_dirs=[str(sites)], logger=MagicMock())
    listing = inspector.list_virtual_hosts()
    assert len(listing.config_files) == 2
    assert sorted(h.domain for h in listing.hosts) == ["api.example.com", "example.com", "www.example.com"]

def test_no_config_files_is_distinct_from_no_domains(tmp_path):
    missing = tmp_path / "missing"
    inspector = VirtualHostInspector(config_dirs=[str(missing)], logger=MagicMock())
    listing = inspector.list_virtual_hosts()
    assert listing.config_files == []
    assert "No Nginx site configuration found" in render_virtual_hosts(listing, inspector.config_dirs)

    (tmp_path / "default").write_text(DEFAULT_CONF)
    inspector = VirtualHostInspector(config_dirs=[str(tmp_path)], logger=MagicMock())
    listing = inspector.list_virtual_hosts()
    assert listing.hosts == []
    rendered = render_virtual_hosts(listing, inspector.config_dirs)
    assert EMPTY in rendered
    assert "No Nginx site configuration found" not in rendered

def test_describe_virtual_host_excerpt(sites, mocker):
    mocker.patch.object(settings, "NGINX_EXCERPT_LINES", 2)
    inspector = VirtualHostInspector(config_dirs=[str(sites)], logger=MagicMock())
    excerpt = inspector.describe_virtual_host("api.example.com")
    lines = excerpt.splitlines()
    assert lines[0] == f"{sites / 'example'}:"
    assert lines[1].strip() == "server_name api.example.com;"
    assert len(lines) == 4

def test_describe_virtual_host_requires_exact_token(sites):
    inspector = VirtualHostInspector(config_dirs=[str(sites)], logger=MagicMock())
    with pytest.raises(VirtualHostNotFound):
        inspector.describe_virtual_host("example.org")
    with pytest.raises(VirtualHostNotFound):
        inspector.describe_virtual_host("api.example")

def test_describe_virtual_host_single_line_block(tmp_path):
    (tmp_path / "compact").write_text("server { listen 80; server_name x.com; }\n")
    inspector = VirtualHostInspector(config_dirs=[str(tmp_path)], logger=MagicMock())
    assert [host.domain for host in inspector.list_virtual_hosts().hosts] == ["x.com"]
    excerpt = inspector.describe_virtual_host("x.com")
    assert excerpt.splitlines() == [f"{tmp_path / 'compact'}:", "server { listen 80; server_name x.com; }"]

def test_describe_virtual_host_ignores_commented_server_name(tmp_path):
    (tmp_path / "old").write_text("# server_name legacy.example.com;\nserver {\n    server_name new.example.com;\n}\n")
    inspector = VirtualHostInspector(config_dirs=[str(tmp_path)], logger=MagicMock())
    with pytest.raises(VirtualHostNotFound):
        inspector.describe_virtual_host("legacy.example.com")
    assert inspector.describe_virtual_host("new.example.com").splitlines()[1].strip() == "server_name new.example.com;"
