# labconf/ui/colors.py
"""
labconf Terminal Color System
ANSI codes used by diff previews, confirmation prompts and log output.
"""

# ═══════════════════════════════════════════════════════════════
# BASE PALETTE
# ═══════════════════════════════════════════════════════════════

RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"

BRIGHT_RED = "\033[91m"
BRIGHT_GREEN = "\033[92m"

# ═══════════════════════════════════════════════════════════════
# TEXT STYLES
# ═══════════════════════════════════════════════════════════════

BOLD = "\033[1m"
DIM = "\033[2m"

RESET = "\033[0m"

# ═══════════════════════════════════════════════════════════════
# SEMANTIC COLOR ROLES
# ═══════════════════════════════════════════════════════════════

# Diff preview
DIFF_HUNK = BOLD
DIFF_ADDITION = f"{BRIGHT_GREEN}{BOLD}"
DIFF_REMOVAL = f"{BRIGHT_RED}{BOLD}"

# Prompts
PROMPT_ACCENT = "\033[34;1m"      # Purpose label inside confirmation prompts
CONFIRMED_FG = "\033[34;1m"
DECLINED_FG = "\033[31;1m"

# Log levels
LOG_ERROR_FG = "\033[31;1m"
LOG_WARNING_FG = "\033[33;1m"
LOG_INFO_FG = "\033[34;1m"
LOG_DEBUG_FG = "\033[36;1m"

# ═══════════════════════════════════════════════════════════════
# COLOR UTILITIES
# ═══════════════════════════════════════════════════════════════

def colorize(text: str, color: str, style: str = "") -> str:
    """Apply color and optional style to text"""
    return f"{style}{color}{text}{RESET}"


def maybe_colorize(text: str, color: str, enabled: bool = True) -> str:
    """Colorize only when enabled (e.g. the stream is a terminal)."""
    if not enabled or not color:
        return text
    return colorize(text, color)
