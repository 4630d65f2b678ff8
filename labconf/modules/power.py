"""
Power Module

GNOME power settings (screen blank, automatic suspend) via dconf.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from labconf.core.block_engine import ContentBlock
from labconf.modules.base import (
    DCONF_PROFILE,
    BlockModule,
    ConfigTarget,
    ModuleMetadata,
    ModuleReport,
)

logger = logging.getLogger("LabConf.Power")

POWER_SETTINGS: Dict[str, ConfigTarget] = {
    "screen_blank": ConfigTarget(
        "Disable screen blank (never turn off screen)",
        "/etc/dconf/db/local.d/00-screen_blank",
        ContentBlock.of("[org/gnome/desktop/session]", "idle-delay=uint32 0"),
    ),
    "suspend": ConfigTarget(
        "Disable automatic suspend",
        "/etc/dconf/db/local.d/00-automatic_suspend",
        ContentBlock.of(
            "[org/gnome/settings-daemon/plugins/power]",
            "sleep-inactive-ac-type='nothing'",
        ),
    ),
}


def parse_settings(value: Union[str, Iterable[str], None]) -> List[str]:
    if value is None:
        return list(POWER_SETTINGS)
    if isinstance(value, str):
        names = [part.strip() for part in value.split(",") if part.strip()]
    else:
        names = [str(part).strip() for part in value if str(part).strip()]
    if not names:
        return list(POWER_SETTINGS)
    for name in names:
        if name not in POWER_SETTINGS:
            raise ValueError(f"Unknown power setting: {name} (choose from {', '.join(POWER_SETTINGS)})")
    return list(dict.fromkeys(names))


class PowerModule(BlockModule):
    """Configure system power settings."""

    def __init__(self, settings: Optional[Union[str, Iterable[str]]] = None, root: str = "/"):
        super().__init__(
            ModuleMetadata(name="power", description="Configure system power settings"),
            root=root,
        )
        self.settings = parse_settings(settings)

    def targets(self) -> List[ConfigTarget]:
        profile = ConfigTarget(
            "Create dconf profile for system-wide settings",
            "/etc/dconf/profile/user",
            DCONF_PROFILE,
            insert_only=True,
        )
        return [profile] + [POWER_SETTINGS[name] for name in self.settings]

    def after_run(self, report: ModuleReport) -> None:
        self.refresh_dconf(report)
