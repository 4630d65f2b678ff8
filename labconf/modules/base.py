"""
Base Module Interface

Abstract base class for provisioning modules. A module describes the config
files it owns as (purpose, path, block) targets and hands each one to a
SectionBlockEditor.
"""

import logging
import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from labconf.core.block_editor import Disposition, SectionBlockEditor
from labconf.core.block_engine import BlockEditError, ContentBlock

logger = logging.getLogger("LabConf.Modules")

DCONF_DB_DIR = "/etc/dconf/db"
DCONF_PROFILE = ContentBlock.of("user-db:user", "system-db:local")


@dataclass
class ModuleMetadata:
    """Module metadata."""
    name: str
    description: str
    version: str = "1.0.0"


@dataclass(frozen=True)
class ConfigTarget:
    """One block edit: why, where (absolute system path) and what."""
    purpose: str
    path: str
    block: ContentBlock
    insert_only: bool = False


@dataclass
class TargetOutcome:
    target: ConfigTarget
    path: Path
    disposition: Optional[Disposition] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ModuleReport:
    """Per-target results of one module run."""
    module: str
    remove: bool = False
    outcomes: List[TargetOutcome] = field(default_factory=list)

    def _with(self, disposition: Disposition) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.disposition is disposition]

    @property
    def applied(self) -> List[TargetOutcome]:
        return self._with(Disposition.APPLIED)

    @property
    def declined(self) -> List[TargetOutcome]:
        return self._with(Disposition.DECLINED)

    @property
    def failed(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.declined

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class BlockModule(ABC):
    """
    Abstract base class for all provisioning modules.

    Subclasses only describe targets; running them, collecting outcomes and
    isolating per-target failures happens here. Every system path is
    re-rooted under ``root`` so a module can be pointed at a scratch tree.
    """

    def __init__(self, metadata: ModuleMetadata, root: str = "/"):
        self.metadata = metadata
        self.root = Path(root)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def uses_real_root(self) -> bool:
        return os.path.realpath(self.root) == os.path.realpath("/")

    def resolve(self, system_path: str) -> Path:
        """Map an absolute system path into this module's root."""
        return self.root / system_path.lstrip("/")

    @abstractmethod
    def targets(self) -> List[ConfigTarget]:
        """Targets in the order they are applied."""
        pass

    def after_run(self, report: ModuleReport) -> None:
        """Hook called once all targets have been processed."""
        pass

    def run(self, editor: SectionBlockEditor, remove: bool = False) -> ModuleReport:
        action = "Removing" if remove else "Applying"
        logger.debug(f"{action} {self.name} module under {self.root}")
        report = ModuleReport(module=self.name, remove=remove)

        for target in self.targets():
            if remove and target.insert_only:
                logger.debug(f"{target.purpose}: kept on removal")
                continue

            path = self.resolve(target.path)
            outcome = TargetOutcome(target=target, path=path)
            try:
                if remove:
                    outcome.disposition = editor.remove(target.purpose, path, target.block)
                else:
                    outcome.disposition = editor.insert(target.purpose, path, target.block)
            except BlockEditError as e:
                logger.error(f"{target.purpose}: failed for {path}: {e}")
                outcome.error = str(e)
            report.outcomes.append(outcome)

        self.after_run(report)

        if report.failed:
            logger.error(f"{self.name}: {len(report.failed)} of {len(report.outcomes)} target(s) failed")
        else:
            logger.info(f"{self.name}: {len(report.applied)} applied, {len(report.declined)} declined")
        return report

    def refresh_dconf(self, report: ModuleReport) -> bool:
        """
        Run ``dconf update`` when a file under /etc/dconf/db was written.

        Only done against the real root and when the binary is installed.
        Returns True if the command ran successfully.
        """
        touched = [
            o for o in report.applied
            if o.target.path.startswith(DCONF_DB_DIR + "/")
        ]
        if not touched:
            return False
        if not self.uses_real_root:
            logger.debug(f"Skipping dconf update, root is {self.root}")
            return False
        dconf = shutil.which("dconf")
        if dconf is None:
            logger.warning("dconf not found, database not updated")
            return False

        result = subprocess.run([dconf, "update"], capture_output=True, text=True)
        if result.returncode != 0:
            logger.warning(f"dconf update failed: {result.stderr.strip()}")
            return False
        logger.info("dconf database updated")
        return True
