# linear_cli/commands/workflow_commands.py

from pathlib import Path
from typing import Optional

import click

from ..api import LinearAPI
from ..blocking import next_candidates
from ..config import Config
from ..exceptions import EntityNotFound, GitError, LinearCLIError
from ..logger import logger
from ..standup import GitHubActivity, build_report, collect_github_activity, yesterday
from ..worktree import WorktreeOrchestrator, branch_name, issue_from_branch
from .issue_commands import IssueCommands

RULE = "─" * 41


class WorkflowCommands:
    """Commands tying issues to local git work: branch, next, done, standup."""

    def __init__(
        self,
        linear_api: LinearAPI,
        config: Config,
        orchestrator: Optional[WorktreeOrchestrator] = None,
        github: Optional[GitHubActivity] = None,
    ):
        self.linear_api = linear_api
        self.config = config
        self.orchestrator = orchestrator or WorktreeOrchestrator()
        self.github = github or GitHubActivity()
        self.issue_commands = IssueCommands(linear_api, config)

    async def _require_issue(self, issue_id: str):
        issue = await self.linear_api.get_issue(issue_id)
        if issue is None:
            raise EntityNotFound("Issue", issue_id)
        return issue

    async def branch(self, issue_id: str):
        issue = await self._require_issue(issue_id)
        name = branch_name(issue.identifier, issue.title)
        self.orchestrator.create_branch(name)
        click.secho(f"\nCreated branch: {name}", fg="green")
        click.echo(f"\nWorking on: {issue.identifier} - {issue.title}")

    async def next(self, dry_run: bool = False):
        """
        Pick an unblocked issue and set up a worktree for it.

        Everything but the final shell command goes to stderr, so the output
        can be passed to ``eval`` by a shell wrapper.
        """
        # Fail before any network call when not inside a repository
        self.orchestrator.git.repo_root()

        viewer = await self.linear_api.get_viewer()
        issues = await self.linear_api.get_issues(self.config.team_key)
        candidates = next_candidates(issues, viewer.id)
        if not candidates:
            raise LinearCLIError("No unblocked issues found")

        click.secho("Select an issue to work on:\n", bold=True, err=True)
        for position, issue in enumerate(candidates, 1):
            you = click.style("(you)", fg="green") if issue.is_assigned_to(viewer.id) else ""
            project = (
                click.style(f"[{issue.project_name}]", fg="bright_black")
                if issue.project_name
                else ""
            )
            click.echo(f"  {position}. {issue.identifier}: {issue.title} {you} {project}", err=True)
        click.echo("", err=True)

        selection = click.prompt("Enter number", type=int, err=True)
        if selection < 1 or selection > len(candidates):
            raise LinearCLIError("Invalid selection")
        selected = candidates[selection - 1]

        plan = self.orchestrator.plan(selected.identifier, selected.title)
        command = plan.shell_command(self.config.agent_command)

        if dry_run:
            click.secho("\nDry run - would execute:\n", bold=True)
            click.echo(f'  git worktree add "{plan.path}" -b "{plan.branch}"')
            click.echo("  Copy .worktreeinclude files to worktree")
            if plan.package_manager:
                click.echo(f"  {plan.package_manager} install")
            click.echo(f"  {command}")
            return

        if plan.exists:
            logger.warning(f"Worktree already exists: {plan.path}")
            click.echo(command)
            return

        copied = self.orchestrator.create(plan)
        if copied:
            click.secho(f"Copied: {', '.join(copied)}", fg="green", err=True)
        click.echo(command)

    async def done(
        self, issue_id: Optional[str] = None, close: bool = True, keep_branch: bool = False
    ):
        if not issue_id:
            try:
                issue_id = issue_from_branch(self.orchestrator.git.current_branch())
            except GitError as e:
                logger.debug(f"Could not read current branch: {e.message}")
            if not issue_id:
                raise LinearCLIError("Could not detect issue from branch name")

        issue = await self._require_issue(issue_id)
        click.secho(f"\nCompleting: {issue.identifier}: {issue.title}\n", bold=True)

        if issue.state.type == "completed":
            click.secho("Issue already closed", fg="bright_black")
        elif close:
            try:
                await self.issue_commands.close_issue(issue_id, quiet=True)
                click.secho(f"✓ Closed {issue_id}", fg="green")
            except LinearCLIError as e:
                logger.warning(f"Could not close issue: {e.message}")

        cwd = Path.cwd()
        cleanup = self.orchestrator.cleanup_plan(cwd, keep_branch=keep_branch)
        if cleanup is None:
            click.secho("\nDone!", fg="green")
            return

        click.secho(f"\nWorktree detected: {cwd}", fg="bright_black")
        click.secho("\nTo clean up the worktree, run:\n", bold=True)
        for command in cleanup.commands:
            click.echo(command)
        click.secho("\nOr copy this one-liner:", fg="bright_black")
        click.echo(cleanup.one_liner)

    async def standup(self, github: bool = True):
        day = yesterday()
        viewer = await self.linear_api.get_viewer()
        issues = await self.linear_api.get_issues(self.config.team_key)
        report = build_report(issues, viewer.id, day)

        click.secho(f"\nStandup for {viewer.name}\n", bold=True)
        click.secho(f"{RULE}\n", fg="bright_black")

        click.secho("Yesterday (completed):", bold=True)
        if not report.completed:
            click.secho("  No issues completed", fg="bright_black")
        for issue in report.completed:
            click.echo(f"  {click.style('✓', fg='green')} {issue.identifier}: {issue.title}")

        click.echo("")
        click.secho("Today (in progress):", bold=True)
        if not report.in_progress:
            click.secho("  No issues in progress", fg="bright_black")
        for issue in report.in_progress:
            click.echo(f"  → {issue.identifier}: {issue.title}")

        if report.blocked:
            click.echo("")
            click.secho("Blocked:", bold=True)
            for issue in report.blocked:
                click.echo(f"  {click.style('⊘', fg='red')} {issue.identifier}: {issue.title}")

        if github:
            self._echo_github(day)
        click.echo("")

    def _echo_github(self, day: str):
        click.echo("")
        click.secho(f"{RULE}\n", fg="bright_black")
        click.secho("GitHub Activity (yesterday):", bold=True)

        commits, prs = collect_github_activity(self.github, day)
        if commits is None:
            click.secho(
                "  (gh CLI not available - install gh for GitHub activity)", fg="bright_black"
            )
            return

        if commits:
            total = sum(len(lines) for lines in commits.values())
            click.echo(f"\n  Commits ({total}):")
            for repo, lines in commits.items():
                click.echo(f"    {click.style(repo, bold=True)} ({len(lines)}):")
                for line in lines:
                    click.echo(f"      {line}")

        if prs:
            click.echo("\n  Pull Requests:")
            for pr in prs:
                status = click.style(pr.status, fg="green" if pr.status == "merged" else "yellow")
                prefix = click.style(f"{pr.repository}#", fg="bright_black")
                click.echo(f"    {prefix}{pr.number} {pr.title} [{status}]")

        if not commits and not prs:
            click.secho("  No GitHub activity yesterday", fg="bright_black")
