from typing import List, Sequence, Tuple

from devopsfetch.models import (
    Account,
    ActivityWindow,
    ContainerDetail,
    ContainerSummary,
    ImageSummary,
    PortBinding,
    VirtualHostListing,
)

"""
보고서 렌더링. 모든 표는 제목 줄, 헤더 줄, 구분선(-) 줄, 데이터 줄 순서입니다.
빈 결과는 EMPTY 문구로, 오류는 'Error: ...' 한 줄로 구분됩니다.
"""

EMPTY = "(no entries)"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

def format_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    """열 너비를 맞춘 일반 텍스트 표"""
    if not rows:
        return EMPTY
    cells = [[str(value) for value in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))

    def _line(values: Sequence[str]) -> str:
        return "  ".join(f"{value:<{widths[i]}}" for i, value in enumerate(values)).rstrip()

    lines = [_line(headers), _line(["-" * w for w in widths])]
    lines.extend(_line(row) for row in cells)
    return "\n".join(lines)

def section(title: str, body: str) -> str:
    return f"{title}\n{body}"

def render_error(message: object) -> str:
    return f"Error: {message}"

def render_ports(bindings: List[PortBinding]) -> str:
    rows = [(b.port, b.protocol, b.process or "-") for b in bindings]
    return section("Active Ports and Services:", format_table(("PORT", "PROTOCOL", "SERVICE"), rows))

def render_port_detail(port: int, output: str) -> str:
    return section(f"Details for port {port}:", output or f"{EMPTY} no process is using port {port}")

def render_containers(images: List[ImageSummary], containers: List[ContainerSummary]) -> str:
    image_rows = [(i.repository, i.tag, i.image_id, i.created, i.size) for i in images]
    container_rows = [
        (c.container_id, c.image, c.command, c.created, c.status, c.ports, c.name)
        for c in containers
    ]
    return "\n\n".join([
        section("Docker Images:", format_table(("REPOSITORY", "TAG", "IMAGE ID", "CREATED", "SIZE"), image_rows)),
        section(
            "Docker Containers:",
            format_table(("CONTAINER ID", "IMAGE", "COMMAND", "CREATED", "STATUS", "PORTS", "NAMES"), container_rows)
        ),
    ])

def render_container_detail(detail: ContainerDetail) -> str:
    fields: List[Tuple[str, str]] = [
        ("Id", detail.container_id),
        ("Name", detail.name),
        ("State", detail.state),
        ("Image", detail.image),
    ]
    mount_rows = [(m.type, m.source, m.destination, m.mode or "-", "rw" if m.rw else "ro") for m in detail.mounts]
    return "\n".join([
        section(f"Details for container {detail.name}:", format_table(("FIELD", "VALUE"), fields)),
        "",
        section("Mounts:", format_table(("TYPE", "SOURCE", "DESTINATION", "MODE", "RW"), mount_rows)),
    ])

def render_virtual_hosts(listing: VirtualHostListing, searched: Sequence[str]) -> str:
    title = "Nginx Domains and Ports:"
    if not listing.config_files:
        return section(title, f"No Nginx site configuration found in {', '.join(searched)}")
    rows = [
        (h.domain, ",".join(h.listen), h.proxy_pass or "-", h.config_file)
        for h in listing.hosts
    ]
    return section(title, format_table(("DOMAIN", "PORT", "PROXY", "CONFIG FILE"), rows))

def render_virtual_host_detail(domain: str, excerpt: str) -> str:
    return section(f"Nginx configuration for {domain}:", excerpt)

def render_accounts(accounts: List[Account]) -> str:
    rows = [(a.username, a.uid, a.gid, a.home, a.last_login) for a in accounts]
    return section("Users and Last Login Times:", format_table(("USER", "UID", "GID", "HOME", "LAST LOGIN"), rows))

def render_account_detail(account: Account) -> str:
    fields = [
        ("User", account.username),
        ("UID", account.uid),
        ("GID", account.gid),
        ("Groups", ", ".join(account.groups) or "-"),
        ("Home", account.home),
        ("Shell", account.shell or "-"),
        ("Full name", account.gecos or "-"),
        ("Last login", account.last_login),
    ]
    return section(f"Details for user {account.username}:", format_table(("FIELD", "VALUE"), fields))

def render_activity(window: ActivityWindow) -> str:
    lines = [
        f"Activities between {window.requested_start.strftime(TIME_FORMAT)} and {window.requested_end.strftime(TIME_FORMAT)}:"
    ]
    if window.earliest is None or window.latest is None:
        lines.append(f"{EMPTY} the journal has no retained entries")
        return "\n".join(lines)

    lines.append(f"Journal covers {window.earliest.strftime(TIME_FORMAT)} to {window.latest.strftime(TIME_FORMAT)}")
    if window.effective_start and window.effective_end and window.effective_start <= window.effective_end:
        lines.append(
            f"Effective range {window.effective_start.strftime(TIME_FORMAT)} to {window.effective_end.strftime(TIME_FORMAT)}"
        )
    else:
        lines.append("Requested range is outside the retained journal range")

    if window.is_empty:
        lines.append(EMPTY)
        return "\n".join(lines)

    lines.append(f"Matching entries: {window.total} (showing {len(window.entries)})")
    rows = [
        (e.timestamp.strftime(TIME_FORMAT), e.hostname, e.identifier, e.message.replace("\n", " "))
        for e in window.entries
    ]
    lines.append(format_table(("TIME", "HOST", "SOURCE", "MESSAGE"), rows))
    return "\n".join(lines)
