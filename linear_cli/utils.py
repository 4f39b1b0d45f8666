# linear_cli/utils.py

import re
from typing import List, Sequence

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def slugify(text: str, max_length: int = 50) -> str:
    """
    Turn a title into a branch-name fragment.

    Lower-cases, collapses runs of non-alphanumerics into one hyphen, trims
    hyphens from both ends and truncates to ``max_length``.
    """
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    slug = slug.strip("-")
    return slug[:max_length]


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


def format_table(rows: Sequence[Sequence[object]]) -> str:
    """Left-align columns by their visible width, two spaces apart."""
    if not rows:
        return ""
    widths: List[int] = []
    for row in rows:
        for i, cell in enumerate(row):
            visible = len(strip_ansi(str(cell)))
            if i >= len(widths):
                widths.append(visible)
            else:
                widths[i] = max(widths[i], visible)

    lines = []
    for row in rows:
        cells = []
        for i, cell in enumerate(row):
            text = str(cell)
            cells.append(text + " " * (widths[i] - len(strip_ansi(text))))
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def truncate(text: str, limit: int = 500) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def suggest_team_key(team_name: str) -> str:
    """Suggest a team key: initials, else the first letters, at most five."""
    words = team_name.split()
    key = "".join(word[0] for word in words).upper()
    if len(key) < 2:
        key = re.sub(r"\s+", "", team_name.strip()[:4].upper())
    return key[:5] or "TEAM"

