"""
Samba Share Module

Per-user "net shared" Samba shares in /etc/samba/smb.conf, and optionally
the VNC X session startup script in each user's home.
"""

import logging
import os
import pwd
import re
import stat
from typing import Iterable, List, Optional, Union

from labconf.core.block_engine import ContentBlock
from labconf.modules.base import BlockModule, ConfigTarget, ModuleMetadata, ModuleReport

logger = logging.getLogger("LabConf.SambaShare")

SMB_CONF = "/etc/samba/smb.conf"

_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]*\$?$")

VNC_XSTARTUP = ContentBlock.of(
    "#!/bin/sh",
    "# For some reason, VNC does not start without these lines.",
    "unset SESSION_MANAGER",
    "unset DBUS_SESSION_BUS_ADDRESS",
    "# Load Xresources (Configuration file for X clients)",
    "if [ -r $HOME/.Xresources ]; then",
    "    xrdb $HOME/.Xresources",
    "fi",
    "",
    "xsetroot -solid grey",
    "# Fix to make GNOME work",
    "export XKL_XMODMAP_DISABLE=1",
    "",
    "gnome-session &",
    "# More light weight desktop environment",
    "# startxfce4 &",
    "",
    "wait",
)


def parse_users(value: Union[str, Iterable[str]]) -> List[str]:
    """Comma-separated string or iterable of user names, validated and de-duplicated."""
    if isinstance(value, str):
        names = [part.strip() for part in value.split(",") if part.strip()]
    else:
        names = [str(part).strip() for part in value if str(part).strip()]
    if not names:
        raise ValueError("At least one user name is required")
    for name in names:
        if not _USERNAME_RE.match(name):
            raise ValueError(f"Invalid user name: {name!r}")
    return list(dict.fromkeys(names))


def validate_share_dir(name: str) -> str:
    name = (name or "").strip()
    if not name or "/" in name or name in (".", ".."):
        raise ValueError(f"Invalid shared folder name: {name!r}")
    return name


def home_directory(user: str, home_base: Optional[str] = None) -> str:
    """
    Home of ``user`` from the passwd database.

    With ``home_base`` the lookup is skipped (``home_base/user``). A user
    missing from passwd falls back to /home/<user> so that shares of deleted
    accounts can still be removed.
    """
    if home_base is not None:
        return f"{home_base.rstrip('/')}/{user}"
    try:
        return pwd.getpwnam(user).pw_dir
    except KeyError:
        logger.warning(f"User '{user}' not found, assuming /home/{user}")
        return f"/home/{user}"


def share_block(user: str, home: str, net_shared_dir: str = "NetShared") -> ContentBlock:
    return ContentBlock.of(
        f"[{user}-{net_shared_dir}]",
        f"   path = {home}/{net_shared_dir}",
        "   available = yes",
        f"   valid users = {user}",
        "   read only = no",
        "   browsable = yes",
        "   public = yes",
        "   writable = yes",
    )


class SambaShareModule(BlockModule):
    """Expose a shared folder of each user over Samba."""

    def __init__(
        self,
        users: Union[str, Iterable[str]],
        net_shared_dir: str = "NetShared",
        home_base: Optional[str] = None,
        vnc: bool = False,
        root: str = "/",
    ):
        super().__init__(
            ModuleMetadata(name="samba_share", description="Configure per-user Samba shares"),
            root=root,
        )
        self.users = parse_users(users)
        self.net_shared_dir = validate_share_dir(net_shared_dir)
        self.home_base = home_base
        self.vnc = vnc

    def targets(self) -> List[ConfigTarget]:
        targets = []
        for user in self.users:
            home = home_directory(user, self.home_base)
            targets.append(
                ConfigTarget(
                    f"Create Net Shared Folder for {user}",
                    SMB_CONF,
                    share_block(user, home, self.net_shared_dir),
                )
            )
            if self.vnc:
                targets.append(
                    ConfigTarget(
                        f"Config VNC Server X session for {user}",
                        f"{home}/.vnc/xstartup",
                        VNC_XSTARTUP,
                    )
                )
        return targets

    def after_run(self, report: ModuleReport) -> None:
        # xstartup is executed by the VNC server.
        for outcome in report.applied:
            if report.remove or not outcome.target.path.endswith("/.vnc/xstartup"):
                continue
            try:
                mode = os.stat(outcome.path).st_mode
                os.chmod(outcome.path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                logger.warning(f"Could not make {outcome.path} executable: {e}")
                continue
            logger.debug(f"Marked {outcome.path} executable")
