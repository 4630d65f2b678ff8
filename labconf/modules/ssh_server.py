"""
SSH Server Module

Drop-in sshd configuration under /etc/ssh/sshd_config.d.
"""

import logging
from typing import List, Union

from labconf.core.block_engine import ContentBlock
from labconf.modules.base import BlockModule, ConfigTarget, ModuleMetadata

logger = logging.getLogger("LabConf.SSHServer")

SSHD_CONFIG = "/etc/ssh/sshd_config.d/custom.conf"


def validate_port(port: Union[int, str]) -> int:
    try:
        port_num = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid SSH port: {port!r}") from None
    if not 1 <= port_num <= 65535:
        raise ValueError(f"SSH port out of range (1-65535): {port_num}")
    return port_num


def sshd_block(port: int = 22) -> ContentBlock:
    return ContentBlock.of(
        "# SSH Server Configuration",
        f"Port {port}",
        "PermitRootLogin no",
        "PasswordAuthentication yes",
        "X11Forwarding yes",
        "PrintMotd no",
        "AcceptEnv LANG LC_*",
        "Subsystem sftp /usr/lib/openssh/sftp-server",
    )


class SSHServerModule(BlockModule):
    """Configure the OpenSSH server."""

    def __init__(self, port: Union[int, str] = 22, root: str = "/"):
        super().__init__(
            ModuleMetadata(name="ssh_server", description="Configure the OpenSSH server"),
            root=root,
        )
        self.port = validate_port(port)

    def targets(self) -> List[ConfigTarget]:
        return [ConfigTarget("Configure SSH server", SSHD_CONFIG, sshd_block(self.port))]
