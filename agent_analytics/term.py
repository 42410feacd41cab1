"""Terminal output helpers: colour roles, padding, bars and screen control."""

from __future__ import annotations

import math

RESET = "\x1b[0m"

# SGR code per semantic role
ROLES = {
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "cyan": "\x1b[36m",
    "red": "\x1b[31m",
}

CLEAR_HOME = "\x1b[2J\x1b[H"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

BAR_CHAR = "█"
BAR_CAP = 40


def colorize(text, role: str) -> str:
    """Wrap text in the escape sequence for `role`, followed by a reset."""
    return f"{ROLES[role]}{text}{RESET}"


def bold(text) -> str:
    return colorize(text, "bold")


def dim(text) -> str:
    return colorize(text, "dim")


def pad_field(text, width: int) -> str:
    """Left-justify to `width` columns. Longer text is left intact."""
    return str(text).ljust(width)


def bar(value: float, divisor: float, cap: int = BAR_CAP) -> str:
    """Block bar of ceil(value / divisor) characters, at most `cap` long."""
    if value <= 0 or divisor <= 0:
        return ""
    return BAR_CHAR * min(math.ceil(value / divisor), cap)


def success(msg: str) -> str:
    return f"{colorize('✓', 'green')} {msg}"


def warn(msg: str) -> str:
    return f"{colorize('⚠', 'yellow')} {msg}"


def failure(msg: str) -> str:
    return f"{colorize('✗', 'red')} {msg}"


def heading(msg: str) -> str:
    """Section heading, preceded by a blank line."""
    return f"\n{bold(msg)}"
