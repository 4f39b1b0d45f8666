# linear_cli/matching.py

"""
Resolve short human-typed strings to persisted entities.

Name lookups use case-insensitive substring containment and return the first
candidate in fetch order. The remote service does not guarantee that order,
so a query matching several names resolves on a best-effort basis.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

from .config import CHECKLIST_MATCH_THRESHOLD
from .exceptions import EntityNotFound, NoMatchingChecklistItem
from .models import LinearIssue, LinearMilestone, LinearProject

T = TypeVar("T")

UNCHECKED_PATTERN = re.compile(r"- \[ \] ")
CHECKED_PATTERN = re.compile(r"- \[x\] ", re.IGNORECASE)
ANY_CHECKBOX_PATTERN = re.compile(r"- \[[ x]\] ", re.IGNORECASE)

EXACT_MATCH_SCORE = float("inf")


def name_matches(name: Optional[str], query: str) -> bool:
    return bool(name) and query.lower() in name.lower()


def find_by_name(candidates: Iterable[T], query: str) -> Optional[T]:
    """Return the first candidate whose ``name`` contains ``query``."""
    for candidate in candidates:
        if name_matches(candidate.name, query):
            return candidate
    return None


def require_by_name(candidates: Iterable[T], query: str, kind: str) -> T:
    match = find_by_name(candidates, query)
    if match is None:
        raise EntityNotFound(kind, query)
    return match


def find_issue(issues: Iterable[LinearIssue], identifier: str) -> Optional[LinearIssue]:
    """Identifiers are canonical keys, so compare them exactly (any case)."""
    wanted = identifier.upper()
    for issue in issues:
        if issue.identifier.upper() == wanted:
            return issue
    return None


def find_label(labels: Iterable[T], name: str) -> Optional[T]:
    wanted = name.lower()
    for label in labels:
        if label.name.lower() == wanted:
            return label
    return None


def find_milestone(
    projects: Sequence[LinearProject], name: str, project: Optional[LinearProject] = None
) -> Tuple[Optional[LinearProject], Optional[LinearMilestone]]:
    """
    Locate a milestone by name.

    :param projects: Projects with their milestones
    :param name: Milestone name or fragment
    :param project: Restrict the search to this project
    :return: (owning project, milestone), both None if nothing matches
    """
    for candidate in [project] if project else projects:
        milestone = find_by_name(candidate.milestones, name)
        if milestone:
            return candidate, milestone
    return None, None


# Checklist matching


def checklist_score(query: str, text: str) -> float:
    """
    Score how well ``query`` matches a checklist item's text.

    Tiers: exact match scores infinity; when one string contains the other the
    score is len(shorter) / len(longer); otherwise it is the share of query
    words that overlap (substring either way) some word of the item, divided by
    the larger word count.
    """
    query = query.lower().strip()
    text = text.lower().strip()

    if text == query:
        return EXACT_MATCH_SCORE

    if query in text or text in query:
        longer = max(len(query), len(text))
        return min(len(query), len(text)) / longer if longer else 0.0

    query_words = query.split()
    text_words = text.split()
    if not query_words or not text_words:
        return 0.0
    overlap = sum(
        1 for word in query_words if any(tw in word or word in tw for tw in text_words)
    )
    return overlap / max(len(query_words), len(text_words))


@dataclass
class ChecklistToggle:
    description: str
    item: str
    line_index: int


def checklist_item_text(line: str) -> str:
    return ANY_CHECKBOX_PATTERN.sub("", line, count=1).strip()


def toggle_checklist_item(
    description: str,
    query: str,
    check: bool = True,
    threshold: float = CHECKLIST_MATCH_THRESHOLD,
) -> ChecklistToggle:
    """
    Check (or uncheck) the checklist line that best matches ``query``.

    Only lines in the opposite state are candidates. Only the winning line is
    rewritten; every other line of the description is kept as is.

    :param description: Markdown description
    :param query: Approximate item text
    :param check: True to check an unchecked item, False to uncheck
    :param threshold: Minimum accepted score
    :return: ChecklistToggle with the new description and the item text
    """
    from_pattern = UNCHECKED_PATTERN if check else CHECKED_PATTERN
    to_mark = "- [x] " if check else "- [ ] "

    lines = description.split("\n")
    candidates: List[Tuple[int, str]] = [
        (index, line) for index, line in enumerate(lines) if from_pattern.search(line)
    ]

    if not candidates:
        state = "unchecked" if check else "checked"
        raise NoMatchingChecklistItem(f"No {state} items found in description")

    best_index = None
    best_score = 0.0
    for index, line in candidates:
        score = checklist_score(query, checklist_item_text(line))
        if score > best_score:
            best_index, best_score = index, score
            if score == EXACT_MATCH_SCORE:
                break

    if best_index is None or best_score < threshold:
        raise NoMatchingChecklistItem(
            f'No checkbox matching "{query}"',
            candidates=[line.strip() for _, line in candidates],
        )

    line = lines[best_index]
    lines[best_index] = from_pattern.sub(to_mark, line, count=1)
    return ChecklistToggle(
        description="\n".join(lines),
        item=checklist_item_text(line),
        line_index=best_index,
    )
