# linear_cli/blocking.py

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from .config import CLOSED_STATE_TYPES, PRIORITY_MAP, STATUS_TYPE_MAP
from .models import LinearIssue

# No priority (0) sorts after Low (4)
NO_PRIORITY_RANK = 5


def blocked_identifiers(issues: Iterable[LinearIssue]) -> Set[str]:
    """
    Collect every issue named as the target of a ``blocks`` relation.

    The blocker's own state is not consulted: a completed or canceled blocker
    still marks its target as blocked.
    """
    blocked = set()
    for issue in issues:
        for relation in issue.relations:
            if relation.type == "blocks" and relation.related_identifier:
                blocked.add(relation.related_identifier)
    return blocked


def unblocked_issues(issues: Sequence[LinearIssue]) -> List[LinearIssue]:
    """Open issues that no ``blocks`` relation in the set points at."""
    blocked = blocked_identifiers(issues)
    return [
        issue
        for issue in issues
        if issue.state.type not in CLOSED_STATE_TYPES
        and issue.identifier not in blocked
    ]


def open_issues(issues: Iterable[LinearIssue]) -> List[LinearIssue]:
    return [issue for issue in issues if issue.state.type not in CLOSED_STATE_TYPES]


def resolve_status_types(statuses: Iterable[str]) -> List[str]:
    """Map user-facing status names to state types, passing unknown names through."""
    return [STATUS_TYPE_MAP.get(s.lower(), s.lower()) for s in statuses]


def filter_by_status(issues: Iterable[LinearIssue], statuses: Sequence[str]) -> List[LinearIssue]:
    """Keep issues whose state type or state name matches any of ``statuses``."""
    types = resolve_status_types(statuses)
    return [
        issue
        for issue in issues
        if issue.state.type in types or issue.state.name.lower() in types
    ]


@dataclass
class IssueFilter:
    """
    Filters applied to a fetched issue list.

    Filter classes are AND'd together; values within ``labels`` and within
    ``statuses`` are OR'd. ``project`` and ``milestone`` must already be alias
    resolved.
    """

    viewer_id: Optional[str] = None
    mine: bool = False
    labels: List[str] = field(default_factory=list)
    project: Optional[str] = None
    milestone: Optional[str] = None
    priority: Optional[str] = None
    statuses: List[str] = field(default_factory=list)

    def apply(self, issues: Iterable[LinearIssue]) -> List[LinearIssue]:
        filtered = list(issues)

        if self.statuses:
            filtered = filter_by_status(filtered, self.statuses)

        if self.mine:
            filtered = [i for i in filtered if i.is_assigned_to(self.viewer_id)]

        if self.labels:
            wanted = {label.lower() for label in self.labels}
            filtered = [
                i for i in filtered if any(l.lower() in wanted for l in i.labels)
            ]

        if self.project:
            project = self.project.lower()
            filtered = [
                i for i in filtered if i.project_name and project in i.project_name.lower()
            ]

        if self.milestone:
            milestone = self.milestone.lower()
            filtered = [
                i
                for i in filtered
                if i.milestone_name and milestone in i.milestone_name.lower()
            ]

        if self.priority:
            target = PRIORITY_MAP.get(self.priority.lower())
            if target is not None:
                filtered = [i for i in filtered if i.priority == target]

        return filtered


def display_sort_key(viewer_id: Optional[str]):
    """Viewer's issues first, then priority (urgent first, none last), then sort key descending."""

    def key(issue: LinearIssue):
        return (
            0 if issue.is_assigned_to(viewer_id) else 1,
            issue.priority or NO_PRIORITY_RANK,
            -(issue.sort_order or 0),
        )

    return key


def sort_for_display(issues: Iterable[LinearIssue], viewer_id: Optional[str]) -> List[LinearIssue]:
    return sorted(issues, key=display_sort_key(viewer_id))


def select_issues(
    issues: Sequence[LinearIssue],
    issue_filter: IssueFilter,
    unblocked: bool = False,
    all_states: bool = False,
    open_only: bool = False,
):
    """
    Pick the issue set for a listing and return it with its heading.

    :return: (heading, issues sorted for display)
    """
    if unblocked:
        heading = "Unblocked Issues"
        selected = unblocked_issues(issues)
    elif all_states:
        heading = "All Issues"
        selected = list(issues)
    elif open_only:
        heading = "Open Issues"
        selected = open_issues(issues)
    elif issue_filter.statuses:
        heading = f"Issues ({' + '.join(issue_filter.statuses)})"
        selected = list(issues)
    else:
        heading = "Issues (backlog + todo)"
        selected = [i for i in issues if i.state.type in ("backlog", "unstarted")]

    selected = issue_filter.apply(selected)
    return heading, sort_for_display(selected, issue_filter.viewer_id)


def next_candidates(
    issues: Sequence[LinearIssue], viewer_id: Optional[str], limit: int = 10
) -> List[LinearIssue]:
    """Unblocked issues for picking work: the viewer's first, then by identifier."""
    candidates = sorted(
        unblocked_issues(issues),
        key=lambda i: (0 if i.is_assigned_to(viewer_id) else 1, i.identifier),
    )
    return candidates[:limit]
