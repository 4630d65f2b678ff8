# Core modules
from .block_engine import (
    BlockEditError,
    BlockEngine,
    ContentBlock,
    InvalidBlock,
    looks_like_section_header_or_blank,
)
from .block_editor import (
    DiffPreview,
    Disposition,
    InvalidTarget,
    SectionBlockEditor,
    TargetIOError,
)
from .confirmers import (
    AlwaysAcceptConfirmer,
    Confirmer,
    DenyAllConfirmer,
    ScriptedConfirmer,
    TerminalConfirmer,
)

__all__ = [
    "BlockEditError",
    "BlockEngine",
    "ContentBlock",
    "InvalidBlock",
    "looks_like_section_header_or_blank",
    "DiffPreview",
    "Disposition",
    "InvalidTarget",
    "SectionBlockEditor",
    "TargetIOError",
    "AlwaysAcceptConfirmer",
    "Confirmer",
    "DenyAllConfirmer",
    "ScriptedConfirmer",
    "TerminalConfirmer",
]
