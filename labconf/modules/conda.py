"""
Conda Module

System-wide conda shell initialization and shared environment settings.
Installing conda itself is out of scope; only the config blocks are managed.
"""

import logging
from typing import List, Optional

from labconf.core.block_engine import ContentBlock
from labconf.modules.base import BlockModule, ConfigTarget, ModuleMetadata

logger = logging.getLogger("LabConf.Conda")

BASHRC = "/etc/bash.bashrc"
CONDARC = "/etc/conda/.condarc"
CONDA_TYPES = ("miniconda", "miniforge")


def validate_conda_type(conda_type: str) -> str:
    value = (conda_type or "").strip().lower()
    if value not in CONDA_TYPES:
        raise ValueError(f"Unknown conda type: {conda_type!r} (choose from {', '.join(CONDA_TYPES)})")
    return value


def _require_absolute(label: str, path: str) -> str:
    path = (path or "").rstrip("/")
    if not path.startswith("/"):
        raise ValueError(f"{label} must be an absolute path, got {path!r}")
    return path


def init_block(conda_path: str, mamba: bool = False) -> ContentBlock:
    """The same hook ``conda init`` writes, pointed at a shared install."""
    lines = [
        "# >>> conda initialize >>>",
        "# !! Contents within this block are managed by 'conda init' !!",
        f"__conda_setup=\"$('{conda_path}/bin/conda' 'shell.bash' 'hook' 2> /dev/null)\"",
        "if [ $? -eq 0 ]; then",
        "    eval \"$__conda_setup\"",
        "else",
        f"    if [ -f \"{conda_path}/etc/profile.d/conda.sh\" ]; then",
        f"        . \"{conda_path}/etc/profile.d/conda.sh\"",
        "    else",
        f"        export PATH=\"{conda_path}/bin:$PATH\"",
        "    fi",
        "fi",
        "unset __conda_setup",
    ]
    if mamba:
        lines += [
            f"if [ -f \"{conda_path}/etc/profile.d/mamba.sh\" ]; then",
            f"    . \"{conda_path}/etc/profile.d/mamba.sh\"",
            "fi",
        ]
    lines.append("# <<< conda initialize <<<")
    return ContentBlock(tuple(lines))


def condarc_block(env_path: str, miniforge: bool = False) -> ContentBlock:
    lines = [
        "# Shared conda environment folder",
        "envs_dirs:",
        f"  - {env_path}",
    ]
    if miniforge:
        # Miniforge installs are kept on conda-forge only.
        lines += [
            "# Always use conda-forge channel",
            "channels:",
            "- conda-forge",
            "- nodefaults",
        ]
    return ContentBlock(tuple(lines))


class CondaModule(BlockModule):
    """
    Share one conda installation with every user.

    ``mamba=None`` looks for ``etc/profile.d/mamba.sh`` in the installation
    (under ``root``) and adds the mamba hook when it is there.
    """

    def __init__(
        self,
        path: str = "/usr/local/miniconda3",
        env_path: str = "/home/Shared/conda_envs",
        conda_type: str = "miniconda",
        mamba: Optional[bool] = None,
        root: str = "/",
    ):
        super().__init__(
            ModuleMetadata(name="conda", description="Initialize a shared conda installation"),
            root=root,
        )
        self.path = _require_absolute("Conda path", path)
        self.env_path = _require_absolute("Conda env path", env_path)
        self.conda_type = validate_conda_type(conda_type)
        self.mamba = mamba

    @property
    def has_mamba(self) -> bool:
        if self.mamba is not None:
            return self.mamba
        found = self.resolve(f"{self.path}/etc/profile.d/mamba.sh").is_file()
        logger.debug(f"mamba hook {'found' if found else 'not found'} in {self.path}")
        return found

    def targets(self) -> List[ConfigTarget]:
        return [
            ConfigTarget("Global conda init", BASHRC, init_block(self.path, self.has_mamba)),
            ConfigTarget(
                "Global conda configurations",
                CONDARC,
                condarc_block(self.env_path, self.conda_type == "miniforge"),
            ),
        ]
