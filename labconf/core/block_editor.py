import logging
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from difflib import unified_diff
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO, Union

from labconf.core.block_engine import BlockEditError, BlockEngine, ContentBlock
from labconf.core.confirmers import AlwaysAcceptConfirmer, Confirmer, TerminalConfirmer
from labconf.ui.colors import DIFF_ADDITION, DIFF_HUNK, DIFF_REMOVAL, PROMPT_ACCENT, colorize, maybe_colorize

logger = logging.getLogger("LabConf.BlockEditor")

BlockLike = Union[ContentBlock, str, Sequence[str]]


class InvalidTarget(BlockEditError):
    """The target path is a directory, not a file."""


class TargetIOError(BlockEditError):
    """Reading, creating or writing the target (or its scratch copy) failed."""


class Disposition(Enum):
    NO_CHANGE = "no_change"
    APPLIED = "applied"
    DECLINED = "declined"

    @property
    def exit_code(self) -> int:
        return 1 if self is Disposition.DECLINED else 0


class DiffLineKind(Enum):
    HEADER = "header"
    HUNK = "hunk"
    CONTEXT = "context"
    ADDITION = "addition"
    REMOVAL = "removal"


def _split_keepends(text: str) -> List[str]:
    # str.splitlines() would also break on \r, \f and friends.
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


@dataclass(frozen=True)
class DiffLine:
    kind: DiffLineKind
    text: str


@dataclass
class DiffPreview:
    """
    Unified diff between a target's current and proposed content.

    Transient: built for one edit, rendered, then discarded.
    """

    path: str
    lines: List[DiffLine] = field(default_factory=list)

    @classmethod
    def build(cls, path: str, original: str, proposed: str, context: int = 2) -> "DiffPreview":
        raw = unified_diff(
            _split_keepends(original),
            _split_keepends(proposed),
            fromfile=path,
            tofile=f"{path} (proposed)",
            n=context,
        )
        lines: List[DiffLine] = []
        in_hunks = False
        for entry in raw:
            text = entry.rstrip("\n")
            if text.startswith("@@"):
                in_hunks = True
                lines.append(DiffLine(DiffLineKind.HUNK, text))
            elif not in_hunks:
                lines.append(DiffLine(DiffLineKind.HEADER, text))
            elif text.startswith("+"):
                lines.append(DiffLine(DiffLineKind.ADDITION, text))
            elif text.startswith("-"):
                lines.append(DiffLine(DiffLineKind.REMOVAL, text))
            else:
                lines.append(DiffLine(DiffLineKind.CONTEXT, text))
        return cls(path=path, lines=lines)

    def _of_kind(self, kind: DiffLineKind) -> List[str]:
        return [line.text for line in self.lines if line.kind is kind]

    @property
    def additions(self) -> List[str]:
        return self._of_kind(DiffLineKind.ADDITION)

    @property
    def removals(self) -> List[str]:
        return self._of_kind(DiffLineKind.REMOVAL)

    @property
    def has_additions(self) -> bool:
        return bool(self.additions)

    @property
    def has_removals(self) -> bool:
        return bool(self.removals)

    def render(self, color: bool = True) -> str:
        """Hunk headers bold, additions green, removals red, the rest plain."""
        out: List[str] = []
        for line in self.lines:
            if line.kind is DiffLineKind.HEADER:
                continue
            if line.kind is DiffLineKind.HUNK:
                out.append(f"Proposed changes in {self.path}:")
                out.append(maybe_colorize(line.text, DIFF_HUNK, color))
            elif line.kind is DiffLineKind.ADDITION:
                out.append(maybe_colorize(line.text, DIFF_ADDITION, color))
            elif line.kind is DiffLineKind.REMOVAL:
                out.append(maybe_colorize(line.text, DIFF_REMOVAL, color))
            else:
                out.append(line.text)
        return "\n".join(out) + ("\n" if out else "")


class SectionBlockEditor:
    """
    Section Block Editor

    - Idempotent insert/remove of an anchored block in a text file
    - Every change is previewed as a unified diff before it is committed
    - Commits replace the whole file at once (scratch file + os.replace)

    No lock is taken on the target: two editors writing the same path at the
    same time race, and the later write wins.
    """

    def __init__(
        self,
        confirmer: Optional[Confirmer] = None,
        *,
        output: Optional[TextIO] = None,
        color: bool = True,
        context_lines: int = 2,
        engine: Optional[BlockEngine] = None,
    ):
        self.confirmer = confirmer or TerminalConfirmer()
        self.output = output
        self.color = color
        self.context_lines = context_lines
        self._engine = engine or BlockEngine()

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], **kwargs) -> "SectionBlockEditor":
        """Pick the confirmer from ``script.confirm_all`` in a loaded config."""
        confirm_all = settings.get("script", {}).get("confirm_all", False) is True
        confirmer: Confirmer = AlwaysAcceptConfirmer() if confirm_all else TerminalConfirmer()
        return cls(confirmer, **kwargs)

    # -----------------------------------------------------------
    # TARGET I/O
    # -----------------------------------------------------------

    def _check_target(self, purpose: str, path: Path) -> None:
        if path.is_dir():
            logger.error(f"{purpose}: {path} is a directory")
            raise InvalidTarget(f"{path} is a directory")

    def _read_content(self, purpose: str, path: Path) -> str:
        # newline="" keeps CRLF and lone CR bytes as they are on disk.
        try:
            with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as fh:
                return fh.read()
        except FileNotFoundError:
            return ""
        except OSError as e:
            logger.error(f"{purpose}: failed to read {path}: {e}")
            raise TargetIOError(f"Failed to read {path}: {e}") from e

    def _write_content(self, purpose: str, path: Path, content: str) -> None:
        # Write through symlinks (e.g. dotfiles) instead of replacing them.
        real = Path(os.path.realpath(path))
        try:
            real.parent.mkdir(parents=True, exist_ok=True)
            existing = real.stat() if real.exists() else None
            fd, scratch = tempfile.mkstemp(prefix=f".{real.name}.", suffix=".tmp", dir=str(real.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as fh:
                    fh.write(content)
                if existing is not None:
                    shutil.copymode(real, scratch)
                    if hasattr(os, "geteuid") and os.geteuid() == 0:
                        os.chown(scratch, existing.st_uid, existing.st_gid)
                else:
                    umask = os.umask(0)
                    os.umask(umask)
                    os.chmod(scratch, 0o666 & ~umask)
                os.replace(scratch, real)
            except BaseException:
                if os.path.exists(scratch):
                    os.unlink(scratch)
                raise
        except OSError as e:
            logger.error(f"{purpose}: failed to write {path}: {e}")
            raise TargetIOError(f"Failed to write {path}: {e}") from e

    def _emit(self, text: str) -> None:
        stream = self.output or sys.stdout
        # Undecodable bytes read from disk are shown as \xNN escapes.
        text = text.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")
        stream.write(text)
        stream.flush()

    # -----------------------------------------------------------
    # REVIEW + COMMIT
    # -----------------------------------------------------------

    def _review_and_commit(self, purpose: str, path: Path, proposed: str, preview: DiffPreview) -> Disposition:
        self._emit(preview.render(color=self.color))

        if self.confirmer.automatic:
            logger.debug("Auto-applying changes due to confirm_all=true")
            self._write_content(purpose, path, proposed)
            logger.info(f"Changes applied automatically for {purpose}")
            return Disposition.APPLIED

        label = colorize(purpose, PROMPT_ACCENT) if self.color else purpose
        if self.confirmer.confirm(f"The above changes are made for {label}. Apply changes?"):
            self._write_content(purpose, path, proposed)
            logger.info(f"Changes applied for {purpose}")
            return Disposition.APPLIED

        logger.info(f"Changes declined for {purpose}")
        return Disposition.DECLINED

    # -----------------------------------------------------------
    # OPERATIONS
    # -----------------------------------------------------------

    def preview_insert(self, path: Union[str, Path], block: BlockLike) -> DiffPreview:
        """Diff that ``insert`` would propose, without touching the file."""
        target = Path(path)
        self._check_target("preview", target)
        original = self._read_content("preview", target)
        result = self._engine.add_block_lines(BlockEngine.split_lines(original), ContentBlock.coerce(block))
        proposed = BlockEngine.join_lines(result.lines)
        return DiffPreview.build(str(target), original, proposed, context=self.context_lines)

    def insert(self, purpose: str, path: Union[str, Path], block: BlockLike) -> Disposition:
        block = ContentBlock.coerce(block)
        target = Path(path)
        logger.debug(f"Safely inserting content into file: {target} for {purpose}")

        self._check_target(purpose, target)
        original = self._read_content(purpose, target)

        result = self._engine.add_block_lines(BlockEngine.split_lines(original), block)
        if not result.details["anchor_added"] and not result.details["added"]:
            # A missing final newline alone is not worth a rewrite.
            logger.info(f"{purpose}: No change proposed")
            return Disposition.NO_CHANGE

        proposed = BlockEngine.join_lines(result.lines)
        preview = DiffPreview.build(str(target), original, proposed, context=self.context_lines)

        if not preview.has_additions:
            logger.info(f"{purpose}: No change proposed")
            return Disposition.NO_CHANGE

        return self._review_and_commit(purpose, target, proposed, preview)

    def remove(self, purpose: str, path: Union[str, Path], block: BlockLike) -> Disposition:
        block = ContentBlock.coerce(block)
        target = Path(path)
        logger.debug(f"Safely removing content from file: {target} for {purpose}")

        self._check_target(purpose, target)
        if not target.exists():
            logger.info(f"{purpose}: File doesn't exist, nothing to remove")
            return Disposition.NO_CHANGE

        original = self._read_content(purpose, target)
        result = self._engine.remove_block_lines(BlockEngine.split_lines(original), block)
        if result.details["removed"] == 0:
            logger.info(f"{purpose}: No change proposed")
            return Disposition.NO_CHANGE

        proposed = BlockEngine.join_lines(result.lines)
        preview = DiffPreview.build(str(target), original, proposed, context=self.context_lines)
        if not preview.has_removals:
            logger.info(f"{purpose}: No change proposed")
            return Disposition.NO_CHANGE

        return self._review_and_commit(purpose, target, proposed, preview)
