# linear_cli/commands/issue_commands.py

from typing import Dict, List, Optional, Sequence, Tuple

import click

from ..api import LinearAPI
from ..blocking import IssueFilter, select_issues
from ..config import ESTIMATE_MAP, PRIORITY_LABELS, PRIORITY_MAP, Config
from ..exceptions import EntityNotFound, LinearAPIError, LinearCLIError
from ..logger import logger
from ..matching import (
    find_by_name,
    find_label,
    find_milestone,
    require_by_name,
    toggle_checklist_item,
)
from ..ordering import IssueSiblings, SortOrderEngine
from ..utils import format_table, truncate


def parse_estimate(estimate: Optional[str]) -> Optional[int]:
    if not estimate:
        return None
    value = ESTIMATE_MAP.get(estimate.lower())
    if value is None:
        raise LinearCLIError(f'Invalid estimate "{estimate}". Use: XS, S, M, L, or XL')
    return value


def parse_priority(priority: Optional[str]) -> Optional[int]:
    if not priority:
        return None
    value = PRIORITY_MAP.get(priority.lower())
    if value is None:
        raise LinearCLIError(
            f'Invalid priority "{priority}". Use: urgent, high, medium, low, or none'
        )
    return value


def require_success(payload: Optional[Dict], action: str) -> Dict:
    if not payload or not payload.get("success"):
        raise LinearAPIError(f"Failed to {action}")
    return payload


class IssueCommands:
    def __init__(self, linear_api: LinearAPI, config: Config):
        self.linear_api = linear_api
        self.config = config
        self.team_key = config.team_key

    # Listing

    async def list_issues(
        self,
        unblocked: bool = False,
        all_states: bool = False,
        open_only: bool = False,
        mine: bool = False,
        statuses: Sequence[str] = (),
        project: Optional[str] = None,
        milestone: Optional[str] = None,
        labels: Sequence[str] = (),
        priority: Optional[str] = None,
    ):
        viewer = await self.linear_api.get_viewer()
        issues = await self.linear_api.get_issues(self.team_key)

        issue_filter = IssueFilter(
            viewer_id=viewer.id,
            mine=mine,
            labels=list(labels),
            project=self.config.resolve_alias(project),
            milestone=self.config.resolve_alias(milestone),
            priority=priority,
            statuses=list(statuses),
        )
        heading, selected = select_issues(
            issues, issue_filter, unblocked=unblocked, all_states=all_states, open_only=open_only
        )

        # Optional columns are decided on the whole fetched set
        has_priority = any(i.priority > 0 for i in issues)
        has_assignees = any(i.assignee for i in issues)

        rows = []
        for issue in selected:
            row = [issue.identifier, issue.title, issue.state.name]
            if has_priority:
                label = PRIORITY_LABELS.get(issue.priority, "")
                row.append(click.style(label, bold=True) if label else "-")
            row.append(issue.project_name or "-")
            if has_assignees:
                if issue.is_assigned_to(viewer.id):
                    row.append("you")
                else:
                    row.append(issue.assignee.name if issue.assignee else "-")
            rows.append(row)

        click.secho(f"{heading}:\n", bold=True)
        click.echo(format_table(rows))

    async def show_issue(self, issue_id: str):
        issue = await self.linear_api.get_issue(issue_id)
        if issue is None:
            raise EntityNotFound("Issue", issue_id)

        click.echo(f"# {issue.identifier}: {issue.title}\n")
        click.echo(f"State: {issue.state.name}")
        click.echo(f"Priority: {PRIORITY_LABELS.get(issue.priority) or 'None'}")
        click.echo(f"Project: {issue.project_name or 'None'}")
        click.echo(f"Assignee: {issue.assignee.name if issue.assignee else 'Unassigned'}")
        click.echo(f"Labels: {', '.join(issue.labels) or 'None'}")

        if issue.parent:
            self._echo_context(issue)

        if issue.children:
            click.echo("\n## Sub-issues\n")
            for child in issue.children:
                click.echo(f"  - [{child.state.name}] {child.identifier}: {child.title}")

        blocked_by = [r for r in issue.relations if r.type == "is_blocked_by"]
        if blocked_by:
            click.echo("\n## Blocked by\n")
            for relation in blocked_by:
                click.echo(f"  - {relation.related_identifier}: {relation.related_title}")

        blocks = [r for r in issue.relations if r.type == "blocks"]
        if blocks:
            click.echo("\n## Blocks\n")
            for relation in blocks:
                click.echo(f"  - {relation.related_identifier}: {relation.related_title}")

        click.echo("\n## Description\n")
        click.echo(issue.description or "No description")

        if issue.comments:
            click.echo("\n## Comments\n")
            for comment in issue.comments:
                date = comment.created_at.split("T")[0]
                click.echo(f"**{comment.author}** ({date}):")
                click.echo(comment.body)
                click.echo("")

    def _echo_context(self, issue):
        """Print the parent chain, outermost first, with siblings at each level."""
        click.echo("\n## Context\n")

        chain = []
        current = issue.parent
        while current:
            chain.insert(0, current)
            current = current.parent

        for depth, parent in enumerate(chain):
            indent = "  " * depth
            click.echo(f"{indent}{click.style(parent.identifier, bold=True)}: {parent.title}")
            is_direct_parent = depth == len(chain) - 1
            for sibling in parent.children:
                sibling_indent = "  " * (depth + 1)
                if is_direct_parent and sibling.identifier == issue.identifier:
                    arrow = click.style("→", fg="green")
                    here = click.style("← you are here", fg="green")
                    click.echo(
                        f"{sibling_indent}{arrow} [{sibling.state.name}] "
                        f"{click.style(sibling.identifier, fg='green')}: {sibling.title} {here}"
                    )
                else:
                    click.echo(
                        f"{sibling_indent}- [{sibling.state.name}] "
                        f"{sibling.identifier}: {sibling.title}"
                    )

        immediate = chain[-1]
        if immediate.description:
            click.echo(f"\n### Parent Description ({immediate.identifier})\n")
            click.secho(truncate(immediate.description), fg="bright_black")

    # Mutations

    async def resolve_project_milestone(
        self, project: Optional[str], milestone: Optional[str]
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Look up project and milestone ids by name or alias.

        A milestone alone selects its owning project; with both given the
        milestone must belong to the matched project.

        :return: (project id, milestone id)
        """
        project = self.config.resolve_alias(project)
        milestone = self.config.resolve_alias(milestone)
        if not project and not milestone:
            return None, None

        projects = await self.linear_api.get_projects(self.team_key)
        matched_project = require_by_name(projects, project, "Project") if project else None

        if not milestone:
            return matched_project.id, None

        owner, matched_milestone = find_milestone(projects, milestone, matched_project)
        if matched_milestone is None:
            raise EntityNotFound("Milestone", milestone)
        return owner.id, matched_milestone.id

    async def resolve_label_ids(self, names: Sequence[str]) -> List[str]:
        """Label ids by exact name; unknown labels only warn."""
        if not names:
            return []
        labels = await self.linear_api.get_labels(self.team_key)
        label_ids = []
        for name in names:
            label = find_label(labels, name)
            if label:
                label_ids.append(label.id)
            else:
                logger.warning(f'Label "{name}" not found.')
        return label_ids

    async def create_relations(
        self, issue_id: str, blocks: Sequence[str], blocked_by: Sequence[str]
    ) -> List[Tuple[str, str]]:
        """
        Record ``blocks`` edges in both directions; the edge is always stored
        on the blocking side.

        :return: (verb, other identifier) per created relation
        """
        created = []
        for target in blocks:
            result = await self.linear_api.create_issue_relation(issue_id, target, "blocks")
            require_success(result, f"link {issue_id} as blocking {target}")
            created.append(("blocks", target))
        for blocker in blocked_by:
            result = await self.linear_api.create_issue_relation(blocker, issue_id, "blocks")
            require_success(result, f"link {issue_id} as blocked by {blocker}")
            created.append(("blocked by", blocker))
        return created

    async def create_issue(
        self,
        title: str,
        description: str = "",
        project: Optional[str] = None,
        milestone: Optional[str] = None,
        parent: Optional[str] = None,
        assign: bool = False,
        estimate: Optional[str] = None,
        priority: Optional[str] = None,
        labels: Sequence[str] = (),
        blocks: Sequence[str] = (),
        blocked_by: Sequence[str] = (),
    ):
        """
        Create an issue, then its blocking relations.

        Configured default project and milestone apply when neither option
        is given.
        """
        if not title:
            raise LinearCLIError("Title is required")

        estimate_value = parse_estimate(estimate)
        priority_value = parse_priority(priority)

        if not project and not milestone:
            project = self.config.default_project
            milestone = self.config.default_milestone

        team_id = await self.linear_api.get_team_id(self.team_key)
        if not team_id:
            raise EntityNotFound("Team", self.team_key)

        project_id, milestone_id = await self.resolve_project_milestone(project, milestone)
        label_ids = await self.resolve_label_ids(labels)

        data = {"teamId": team_id, "title": title, "description": description or ""}
        if project_id:
            data["projectId"] = project_id
        if milestone_id:
            data["projectMilestoneId"] = milestone_id
        if parent:
            data["parentId"] = parent
        if assign:
            viewer = await self.linear_api.get_viewer()
            data["assigneeId"] = viewer.id
        if estimate_value is not None:
            data["estimate"] = estimate_value
        if priority_value is not None:
            data["priority"] = priority_value
        if label_ids:
            data["labelIds"] = label_ids

        result = require_success(await self.linear_api.create_issue(data), "create issue")
        issue = result["issue"]

        suffix = ""
        if estimate:
            suffix += f" [{estimate.upper()}]"
        if priority and priority.lower() != "none":
            suffix += f" [{priority.capitalize()}]"
        click.secho(f"Created: {issue['identifier']}{suffix}", fg="green")
        click.echo(issue.get("url") or "")

        for verb, other in await self.create_relations(issue["identifier"], blocks, blocked_by):
            click.secho(f"  → {verb} {other}", fg="bright_black")

    async def update_issue(
        self,
        issue_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[str] = None,
        project: Optional[str] = None,
        milestone: Optional[str] = None,
        priority: Optional[str] = None,
        estimate: Optional[str] = None,
        labels: Sequence[str] = (),
        assign: bool = False,
        parent: Optional[str] = None,
        append: Optional[str] = None,
        check: Optional[str] = None,
        uncheck: Optional[str] = None,
        blocks: Sequence[str] = (),
        blocked_by: Sequence[str] = (),
    ):
        data = {}

        if title:
            data["title"] = title

        estimate_value = parse_estimate(estimate)
        if estimate_value is not None:
            data["estimate"] = estimate_value

        if parent:
            data["parentId"] = parent

        if assign:
            viewer = await self.linear_api.get_viewer()
            data["assigneeId"] = viewer.id

        priority_value = parse_priority(priority)
        if priority_value is not None:
            data["priority"] = priority_value

        if append:
            current = await self.linear_api.get_issue_description(issue_id)
            data["description"] = f"{current}\n\n{append}"
        elif description:
            data["description"] = description

        if check or uncheck:
            current = data.get("description")
            if current is None:
                current = await self.linear_api.get_issue_description(issue_id)
            toggle = toggle_checklist_item(current, check or uncheck, check=bool(check))
            data["description"] = toggle.description
            verb = "Checked" if check else "Unchecked"
            click.secho(f"{verb}: {toggle.item}", fg="green")

        if status:
            states = await self.linear_api.get_workflow_states(self.team_key)
            state = find_by_name(states, status)
            if state is None:
                raise EntityNotFound("Status", status)
            data["stateId"] = state.id

        label_ids = await self.resolve_label_ids(labels)
        if label_ids:
            data["labelIds"] = label_ids

        project_id, milestone_id = await self.resolve_project_milestone(project, milestone)
        if project_id:
            data["projectId"] = project_id
        if milestone_id:
            data["projectMilestoneId"] = milestone_id

        if not data and not blocks and not blocked_by:
            raise LinearCLIError("No updates specified")

        if data:
            result = require_success(
                await self.linear_api.update_issue(issue_id, data), "update issue"
            )
            issue = result["issue"]
            click.secho(f"Updated: {issue['identifier']}", fg="green")
            click.echo(f"{issue['identifier']}: {issue['title']} [{issue['state']['name']}]")

        for verb, other in await self.create_relations(issue_id, blocks, blocked_by):
            click.secho(f"{issue_id} now {verb} {other}", fg="green")

    async def start_issue(self, issue_id: str):
        """Move an issue to the first started state and assign it to the viewer."""
        viewer = await self.linear_api.get_viewer()
        states = await self.linear_api.get_workflow_states(self.team_key)
        started = next((s for s in states if s.type == "started"), None)
        if started is None:
            raise LinearCLIError('Could not find "In Progress" state')

        result = require_success(
            await self.linear_api.update_issue(
                issue_id, {"stateId": started.id, "assigneeId": viewer.id}
            ),
            "start issue",
        )
        issue = result["issue"]
        click.secho(f"Started: {issue['identifier']}", fg="green")
        click.echo(f"{issue['identifier']}: {issue['title']} [{issue['state']['name']}]")

    async def close_issue(self, issue_id: str, quiet: bool = False):
        states = await self.linear_api.get_workflow_states(self.team_key)
        done = next((s for s in states if s.type == "completed"), None)
        if done is None:
            raise LinearCLIError("Could not find completed state")

        require_success(
            await self.linear_api.update_issue(issue_id, {"stateId": done.id}), "close issue"
        )
        if not quiet:
            click.secho(f"Closed: {issue_id}", fg="green")

    async def comment_issue(self, issue_id: str, body: str):
        if not body:
            raise LinearCLIError("Issue ID and comment body required")
        require_success(await self.linear_api.create_comment(issue_id, body), "add comment")
        click.secho(f"Comment added to {issue_id}", fg="green")

    # Ordering

    def _engine(self) -> SortOrderEngine:
        return SortOrderEngine(IssueSiblings(self.linear_api, self.team_key))

    async def move_issue(
        self, issue_id: str, before: Optional[str] = None, after: Optional[str] = None
    ):
        moved = await self._engine().move_one(issue_id, before=before, after=after)
        click.secho(
            f"Moved {moved.entity.identifier} {moved.direction.value} {moved.anchor.identifier}",
            fg="green",
        )

    async def reorder_issues(self, issue_ids: Sequence[str]):
        ordered = await self._engine().reorder_all(issue_ids)
        click.secho("Reordered issues:", fg="green")
        for position, issue in enumerate(ordered, 1):
            click.echo(f"  {position}. {issue.identifier}")
