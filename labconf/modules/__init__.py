"""
Provisioning modules built on SectionBlockEditor.
"""

from labconf.modules.base import (
    BlockModule,
    ConfigTarget,
    ModuleMetadata,
    ModuleReport,
    TargetOutcome,
)
from labconf.modules.conda import CondaModule
from labconf.modules.power import PowerModule
from labconf.modules.proxy import ProxyModule, check_proxy
from labconf.modules.samba_share import SambaShareModule
from labconf.modules.ssh_server import SSHServerModule

MODULES = {
    "proxy": ProxyModule,
    "ssh_server": SSHServerModule,
    "power": PowerModule,
    "conda": CondaModule,
    "samba_share": SambaShareModule,
}

__all__ = [
    "BlockModule",
    "ConfigTarget",
    "ModuleMetadata",
    "ModuleReport",
    "TargetOutcome",
    "CondaModule",
    "PowerModule",
    "ProxyModule",
    "SambaShareModule",
    "SSHServerModule",
    "check_proxy",
    "MODULES",
]
