"""
Proxy Module

System-wide proxy settings for shells, apt, git, ssh (corkscrew over
HTTPS) and GNOME via dconf.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

import requests

from labconf.core.block_engine import ContentBlock
from labconf.modules.base import (
    DCONF_PROFILE,
    BlockModule,
    ConfigTarget,
    ModuleMetadata,
    ModuleReport,
)

logger = logging.getLogger("LabConf.Proxy")

SERVICES = ("env", "apt", "git", "ssh", "dconf")
NO_PROXY = "localhost,127.0.0.1,::1"
DEFAULT_CHECK_URL = "http://example.com"


def validate_endpoint(host: str, port: Union[int, str]) -> int:
    """Return the port as an int, raising ValueError for a bad host or port."""
    if not host or not str(host).strip():
        raise ValueError("Proxy host must not be empty")
    try:
        port_num = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid proxy port: {port!r}") from None
    if not 1 <= port_num <= 65535:
        raise ValueError(f"Proxy port out of range (1-65535): {port_num}")
    return port_num


def parse_services(value: Union[str, Iterable[str], None]) -> List[str]:
    """Accept "env,apt" or a list; empty means every service."""
    if value is None:
        return list(SERVICES)
    if isinstance(value, str):
        names = [part.strip() for part in value.split(",")]
    else:
        names = [str(part).strip() for part in value]
    names = [name for name in names if name]
    if not names:
        return list(SERVICES)

    unknown = [name for name in names if name not in SERVICES]
    if unknown:
        raise ValueError(
            f"Unknown service(s): {', '.join(unknown)} "
            f"(choose from {', '.join(SERVICES)})"
        )
    # Deduplicate, keep the caller's order
    return list(dict.fromkeys(names))


# ---------------------------------------------------------------------------
# Block builders
# ---------------------------------------------------------------------------

def env_block(host: str, port: int) -> ContentBlock:
    http = f"http://{host}:{port}/"
    ftp = f"ftp://{host}:{port}/"
    return ContentBlock.of(
        "# System Proxy",
        f'export http_proxy="{http}"',
        f'export https_proxy="{http}"',
        f'export ftp_proxy="{ftp}"',
        f'export no_proxy="{NO_PROXY}"',
        "#For curl",
        f'export HTTP_PROXY="{http}"',
        f'export HTTPS_PROXY="{http}"',
        f'export FTP_PROXY="{ftp}"',
        f'export NO_PROXY="{NO_PROXY}"',
    )


def bashrc_block() -> ContentBlock:
    return ContentBlock.of("# System Proxy", "source /etc/profile.d/proxy.sh")


def apt_block(host: str, port: int) -> ContentBlock:
    return ContentBlock.of(
        "# System Proxy",
        f'Acquire::http::Proxy "http://{host}:{port}";',
        f'Acquire::https::Proxy "http://{host}:{port}";',
        f'Acquire::ftp::Proxy "ftp://{host}:{port}";',
    )


def git_block(host: str, port: int) -> ContentBlock:
    return ContentBlock.of(
        "[https]",
        f"    proxy = http://{host}:{port}",
        "[http]",
        f"    proxy = http://{host}:{port}",
    )


def _ssh_host_entry(alias: str, hostname: str, host: str, port: int) -> List[str]:
    return [
        f"Host {alias}",
        "    User git",
        "    Port 443",
        f"    Hostname {hostname}",
        "    IdentitiesOnly yes",
        "    TCPKeepAlive yes",
        f"    ProxyCommand corkscrew {host} {port} %h %p",
    ]


def ssh_block(site: str, domain: str, host: str, port: int) -> ContentBlock:
    """SSH-over-HTTPS entries for ``domain`` and ``ssh.domain``."""
    hostname = f"ssh.{domain}"
    return ContentBlock.of(
        f"# Proxy settings to use SSH over HTTPS to access {site}",
        *_ssh_host_entry(domain, hostname, host, port),
        *_ssh_host_entry(hostname, hostname, host, port),
    )


def dconf_block(host: str, port: int) -> ContentBlock:
    lines = ["[system/proxy]", "mode='manual'"]
    for scheme in ("http", "https", "ftp"):
        lines += [f"[system/proxy/{scheme}]", f"host='{host}'", f"port={port}"]
    return ContentBlock(tuple(lines))


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------

class ProxyModule(BlockModule):
    """Configure system-wide proxy settings."""

    def __init__(
        self,
        host: str,
        port: Union[int, str],
        services: Union[str, Sequence[str], None] = None,
        root: str = "/",
    ):
        super().__init__(
            ModuleMetadata(name="proxy", description="Configure system-wide proxy settings"),
            root=root,
        )
        self.port = validate_endpoint(host, port)
        self.host = host.strip()
        self.services = parse_services(services)

    def _service_targets(self, service: str) -> List[ConfigTarget]:
        host, port = self.host, self.port
        if service == "env":
            return [
                ConfigTarget("Login shells proxy", "/etc/profile.d/proxy.sh", env_block(host, port)),
                ConfigTarget("Non-login shells proxy", "/etc/bash.bashrc", bashrc_block()),
            ]
        if service == "apt":
            return [ConfigTarget("Apt proxy", "/etc/apt/apt.conf.d/proxy.conf", apt_block(host, port))]
        if service == "git":
            return [ConfigTarget("Configure Git settings", "/etc/gitconfig", git_block(host, port))]
        if service == "ssh":
            return [
                ConfigTarget(
                    "GitHub.com proxy for SSH access",
                    "/etc/ssh/ssh_config",
                    ssh_block("GitHub", "github.com", host, port),
                ),
                ConfigTarget(
                    "Gitee.com proxy for SSH access",
                    "/etc/ssh/ssh_config",
                    ssh_block("Gitee", "gitee.com", host, port),
                ),
            ]
        if service == "dconf":
            return [
                ConfigTarget(
                    "Create dconf profile for system-wide settings",
                    "/etc/dconf/profile/user",
                    DCONF_PROFILE,
                    insert_only=True,
                ),
                ConfigTarget(
                    "System proxy settings in dconf",
                    "/etc/dconf/db/local.d/00-proxy",
                    dconf_block(host, port),
                ),
            ]
        raise ValueError(f"Unknown service: {service}")

    def targets(self) -> List[ConfigTarget]:
        result: List[ConfigTarget] = []
        for service in self.services:
            result.extend(self._service_targets(service))
        return result

    def after_run(self, report: ModuleReport) -> None:
        self.refresh_dconf(report)


def check_proxy(
    host: str,
    port: Union[int, str],
    url: str = DEFAULT_CHECK_URL,
    timeout: float = 5.0,
    session: Optional[requests.Session] = None,
) -> bool:
    """
    Fetch ``url`` through the proxy.

    Returns True when the proxy answered with a non-error status. Connection
    problems are logged as warnings and reported as False.
    """
    port_num = validate_endpoint(host, port)
    proxy_url = f"http://{host}:{port_num}"
    session = session or requests.Session()

    logger.debug(f"Checking proxy {proxy_url} with {url}")
    try:
        response = session.get(
            url,
            proxies={"http": proxy_url, "https": proxy_url},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.warning(f"Proxy {proxy_url} is not reachable: {e}")
        return False

    if not response.ok:
        logger.warning(f"Proxy {proxy_url} answered {response.status_code} for {url}")
        return False

    logger.info(f"Proxy {proxy_url} is working")
    return True
