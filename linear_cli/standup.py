# linear_cli/standup.py

import json
import subprocess
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import GitHubError
from .logger import logger
from .models import LinearIssue

COMMITS_LIMIT = 50
PRS_LIMIT = 20


def yesterday(today: Optional[date] = None) -> str:
    return ((today or date.today()) - timedelta(days=1)).isoformat()


@dataclass
class StandupReport:
    completed: List[LinearIssue] = field(default_factory=list)
    in_progress: List[LinearIssue] = field(default_factory=list)
    blocked: List[LinearIssue] = field(default_factory=list)


def build_report(issues: Sequence[LinearIssue], viewer_id: str, day: str) -> StandupReport:
    """
    Split the viewer's issues into standup sections.

    A ``blocks`` relation only counts while its target issue is not yet
    completed; the blocker's own state is not consulted.

    :param issues: Team issues with relations and completion dates
    :param viewer_id: Current user id
    :param day: ISO date whose completions are reported
    :return: StandupReport
    """
    mine = [i for i in issues if i.is_assigned_to(viewer_id)]

    blocked_ids = set()
    for issue in issues:
        for relation in issue.relations:
            if relation.type != "blocks":
                continue
            state = relation.related_state
            if state is None or state.type != "completed":
                blocked_ids.add(relation.related_identifier)

    return StandupReport(
        completed=[
            i for i in mine if i.completed_at and i.completed_at.split("T")[0] == day
        ],
        in_progress=[i for i in mine if i.state.type == "started"],
        blocked=[i for i in mine if i.identifier in blocked_ids],
    )


@dataclass
class PullRequest:
    repository: str
    number: int
    title: str
    status: str  # 'merged' or 'open'


class GitHubActivity:
    """Cross-repository activity of the authenticated gh user."""

    def run(self, args: List[str]) -> Any:
        """
        Run a gh command and parse its JSON output.

        :param args: Command arguments (without 'gh' prefix)
        :return: Parsed JSON
        """
        try:
            result = subprocess.run(["gh"] + args, capture_output=True, text=True)
        except FileNotFoundError:
            raise GitHubError("gh CLI not found")
        if result.returncode != 0:
            raise GitHubError(result.stderr.strip() or "gh command failed")
        try:
            return json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise GitHubError(f"Unexpected gh output: {e}")

    def commits(self, day: str) -> Dict[str, List[str]]:
        """Commits authored on ``day``, as 'sha subject' lines grouped by repository."""
        commits = self.run(
            [
                "search", "commits",
                "--author=@me",
                f"--committer-date={day}",
                "--json", "sha,commit,repository",
                "--limit", str(COMMITS_LIMIT),
            ]
        )
        by_repo: Dict[str, List[str]] = {}
        for commit in commits:
            repo = (commit.get("repository") or {}).get("fullName") or "unknown"
            sha = commit.get("sha", "")[:7]
            message = (commit.get("commit") or {}).get("message") or ""
            subject = message.split("\n")[0] or sha
            by_repo.setdefault(repo, []).append(f"{sha} {subject}")
        return by_repo

    def pull_requests(self, day: str) -> List[PullRequest]:
        """PRs merged on ``day`` followed by PRs opened that day, each listed once."""
        fields = ["--json", "number,title,repository", "--limit", str(PRS_LIMIT)]
        merged = self.run(["search", "prs", "--author=@me", f"--merged-at={day}"] + fields)
        created = self.run(
            ["search", "prs", "--author=@me", f"--created={day}", "--state=open"] + fields
        )

        seen = set()
        prs = []
        for status, batch in (("merged", merged), ("open", created)):
            for pr in batch:
                repository = pr.get("repository") or {}
                key = (repository.get("fullName"), pr.get("number"))
                if key in seen:
                    continue
                seen.add(key)
                prs.append(
                    PullRequest(
                        repository=repository.get("name", ""),
                        number=pr.get("number"),
                        title=pr.get("title", ""),
                        status=status,
                    )
                )
        return prs


def collect_github_activity(github: GitHubActivity, day: str):
    """
    Fetch commits and PRs, degrading to warnings.

    :return: (commits by repo or None when gh is unavailable, pull requests)
    """
    try:
        commits = github.commits(day)
    except GitHubError as e:
        logger.debug(f"gh commit search failed: {e.message}")
        return None, []

    try:
        prs = github.pull_requests(day)
    except GitHubError as e:
        logger.warning(f"GitHub PR search failed: {e.message}")
        prs = []
    return commits, prs
