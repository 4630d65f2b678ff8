"""
Section Block Engine for labconf.

This module holds the text logic behind every config-file edit so that:
  - A content block is always "anchor line + member lines".
  - Insertion appends a missing anchor and places missing members after it,
    following the block's declared order and never duplicating a line.
  - Removal strips members found after the anchor and drops the anchor when
    it would otherwise be left behind as an orphaned header.
  - Line splitting matches how the files are read on disk: a trailing newline
    terminates the last line instead of creating an empty one.

It is intentionally content-centric: it operates on lists of lines and
returns new lists, leaving filesystem I/O, diff previews and confirmation to
SectionBlockEditor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union


logger = logging.getLogger("LabConf.BlockEngine")


class BlockEditError(Exception):
    """Base error for block editing failures."""


class InvalidBlock(BlockEditError, ValueError):
    """The content block is empty, has an empty anchor, or embeds newlines."""


def looks_like_section_header_or_blank(line: str) -> bool:
    """
    Heuristic used when deciding whether an anchor became an orphan.

    True for an empty line or a line starting with ``#`` or ``[`` (a comment
    header or an INI-style section). This is content sniffing, not parsing;
    pass a different predicate to BlockEngine for other file formats.
    """
    return line == "" or line.startswith(("#", "["))


@dataclass(frozen=True)
class ContentBlock:
    """An anchor line followed by the member lines that belong under it."""

    lines: Tuple[str, ...]

    def __post_init__(self):
        lines = tuple(self.lines)
        if not lines:
            raise InvalidBlock("Content block must contain at least an anchor line")
        if not lines[0]:
            raise InvalidBlock("Anchor line must be non-empty")
        for line in lines:
            if "\n" in line:
                raise InvalidBlock(f"Block line contains a newline: {line!r}")
        object.__setattr__(self, "lines", lines)

    @classmethod
    def of(cls, anchor: str, *members: str) -> "ContentBlock":
        return cls((anchor,) + tuple(members))

    @classmethod
    def from_text(cls, text: str) -> "ContentBlock":
        """Build a block from newline-delimited text (first line is the anchor)."""
        return cls(tuple(BlockEngine.split_lines(text)))

    @classmethod
    def coerce(cls, value: Union["ContentBlock", str, Sequence[str]]) -> "ContentBlock":
        if isinstance(value, ContentBlock):
            return value
        if isinstance(value, str):
            return cls.from_text(value)
        return cls(tuple(value))

    @property
    def anchor(self) -> str:
        return self.lines[0]

    @property
    def members(self) -> Tuple[str, ...]:
        return self.lines[1:]

    @property
    def is_anchor_only(self) -> bool:
        return len(self.lines) == 1

    def to_text(self) -> str:
        return BlockEngine.join_lines(self.lines)


@dataclass
class EditOperationResult:
    """Structured result for a single in-memory block operation."""

    lines: List[str]
    summary: str
    details: Dict[str, Any] = field(default_factory=dict)


class BlockEngine:
    """
    Pure in-memory section editor.

    All methods take a list of lines and return a new list, never mutating
    the input. Callers are responsible for reading/writing files.
    """

    def __init__(self, orphan_check: Optional[Callable[[str], bool]] = None):
        # Decides whether the line after an emptied anchor marks the start
        # of something unrelated (so the anchor can go too).
        self.orphan_check = orphan_check or looks_like_section_header_or_blank

    # ------------------------------------------------------------------
    # Core helpers
    # ------------------------------------------------------------------
    @staticmethod
    def split_lines(text: str) -> List[str]:
        if not text:
            return []
        lines = text.split("\n")
        if text.endswith("\n"):
            lines.pop()
        return lines

    @staticmethod
    def join_lines(lines: Iterable[str]) -> str:
        # Every line is newline-terminated; no lines means an empty file.
        return "".join(f"{line}\n" for line in lines)

    @staticmethod
    def find_line(lines: Sequence[str], target: str, start: int = 0) -> int:
        """Index of the first exact full-line match at or after ``start``, or -1."""
        for idx in range(start, len(lines)):
            if lines[idx] == target:
                return idx
        return -1

    @staticmethod
    def _find_unclaimed(lines: Sequence[str], target: str, start: int, claimed: Set[int]) -> int:
        for idx in range(start, len(lines)):
            if idx not in claimed and lines[idx] == target:
                return idx
        return -1

    # ------------------------------------------------------------------
    # Block operations
    # ------------------------------------------------------------------
    def add_block_lines(self, lines: Sequence[str], block: ContentBlock) -> EditOperationResult:
        """
        Make ``lines`` contain ``block``.

        The anchor is appended at the end when missing. Each member not found
        anywhere after the anchor is inserted at an advancing cursor that
        starts right after the anchor; a member that is already present moves
        the cursor past its own position so later members land after it.
        That position may lie beyond another section header: a member matched
        under a later section pulls the following missing members there too.

        A line repeated inside the block (``    User git`` under two ``Host``
        entries) needs one existing occurrence per repetition: each match is
        claimed by the member that found it.
        """
        result = list(lines)

        anchor_idx = self.find_line(result, block.anchor)
        anchor_added = anchor_idx < 0
        if anchor_added:
            logger.debug(f"Title line not found, adding it: {block.anchor}")
            result.append(block.anchor)
            anchor_idx = len(result) - 1
        else:
            logger.debug(f"Title line already exists: {block.anchor}")

        cursor = anchor_idx + 1
        claimed: Set[int] = set()
        added: List[str] = []
        for member in block.members:
            found = self._find_unclaimed(result, member, anchor_idx + 1, claimed)
            if found < 0:
                logger.debug(f"Adding missing line: {member}")
                result.insert(cursor, member)
                claimed = {idx + 1 if idx >= cursor else idx for idx in claimed}
                claimed.add(cursor)
                added.append(member)
                cursor += 1
            else:
                logger.debug(f"Line already exists: {member}")
                claimed.add(found)
                cursor = max(cursor + 1, found + 1)

        return EditOperationResult(
            lines=result,
            summary=f"Added {len(added)} line(s) under {block.anchor!r}",
            details={
                "anchor_index": anchor_idx,
                "anchor_added": anchor_added,
                "added": added,
            },
        )

    def remove_block_lines(self, lines: Sequence[str], block: ContentBlock) -> EditOperationResult:
        """
        Strip ``block``'s members from the lines following its anchor.

        The anchor itself is dropped when the block is anchor-only, or when at
        least one member was removed and the anchor is now the last line or
        is followed by a line the orphan check accepts.
        """
        anchor_idx = self.find_line(lines, block.anchor)
        if anchor_idx < 0:
            logger.debug(f"Title line not found, nothing to remove: {block.anchor}")
            return EditOperationResult(
                lines=list(lines),
                summary="Anchor not found",
                details={"removed": 0, "anchor_removed": False},
            )

        skip = set(block.members)
        result = list(lines[: anchor_idx + 1])
        removed = 0
        for line in lines[anchor_idx + 1 :]:
            if line in skip:
                logger.debug(f"Removing line: {line}")
                removed += 1
                continue
            result.append(line)

        anchor_removed = False
        if block.is_anchor_only:
            logger.debug(f"Removing title line as requested: {block.anchor}")
            anchor_removed = True
        elif removed > 0:
            next_idx = anchor_idx + 1
            if next_idx >= len(result):
                logger.debug(f"Removing last title line: {block.anchor}")
                anchor_removed = True
            elif self.orphan_check(result[next_idx]):
                logger.debug(f"Removing isolated title line: {block.anchor}")
                anchor_removed = True

        if anchor_removed:
            del result[anchor_idx]
            removed += 1

        return EditOperationResult(
            lines=result,
            summary=f"Removed {removed} line(s) under {block.anchor!r}",
            details={
                "anchor_index": anchor_idx,
                "removed": removed,
                "anchor_removed": anchor_removed,
            },
        )
