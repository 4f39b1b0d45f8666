# linear_cli/main.py

import asyncio
import logging
import sys
from functools import wraps

import click
from dotenv import load_dotenv

from .api import LinearAPI
from .commands.alias_commands import AliasCommands
from .commands.auth_commands import AuthCommands
from .commands.issue_commands import IssueCommands
from .commands.label_commands import LabelCommands
from .commands.milestone_commands import MilestoneCommands
from .commands.project_commands import ProjectCommands
from .commands.roadmap_commands import RoadmapCommands
from .commands.workflow_commands import WorkflowCommands
from .config import Config, load_config
from .exceptions import LinearCLIError, NoMatchingChecklistItem
from .logger import setup_logger


class LinearGroup(click.Group):
    """Group whose usage errors exit with status 1 like every other failure."""

    def main(self, *args, **kwargs):
        kwargs.pop("standalone_mode", None)
        try:
            return super().main(*args, standalone_mode=False, **kwargs)
        except click.exceptions.Abort:
            click.echo("Aborted!", err=True)
            sys.exit(1)
        except click.ClickException as e:
            e.show()
            sys.exit(1)


def report_errors(func):
    """Print a handled error as one red line on stderr and exit 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LinearCLIError as e:
            click.secho(f"Error: {e.message}", fg="red", err=True)
            if isinstance(e, NoMatchingChecklistItem) and e.candidates:
                click.echo("Available items:", err=True)
                for candidate in e.candidates:
                    click.echo(f"  {candidate}", err=True)
            sys.exit(1)

    return wrapper


def run_async(func):
    @report_errors
    @wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))

    return wrapper


def open_api(config: Config) -> LinearAPI:
    """Client for the configured credentials; fails before any network call."""
    config.require_auth()
    return LinearAPI(config.api_key)


@click.group(cls=LinearGroup)
@click.option("-v", "--verbose", is_flag=True, help="Log every API request.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="Also write a debug log to this file.",
)
@click.pass_context
def cli(ctx, verbose, log_file):
    """Linear CLI - a simple wrapper around Linear's GraphQL API"""
    load_dotenv()
    setup_logger(log_file=log_file, level=logging.DEBUG if verbose else logging.WARNING)
    if ctx.obj is None:
        ctx.obj = load_config()


# Issues


@cli.group(invoke_without_command=True)
@click.option("-u", "--unblocked", is_flag=True, help="Open issues nothing blocks.")
@click.option("-a", "--all", "all_states", is_flag=True, help="Issues in every state.")
@click.option("-o", "--open", "open_only", is_flag=True, help="Issues not done or canceled.")
@click.option("-m", "--mine", is_flag=True, help="Only issues assigned to you.")
@click.option(
    "-s",
    "--status",
    "statuses",
    multiple=True,
    help="Status name or type (backlog, todo, in-progress, done...). Repeatable.",
)
@click.option("-p", "--project", help="Project name or alias.")
@click.option("--milestone", help="Milestone name or alias.")
@click.option("-l", "--label", "labels", multiple=True, help="Label name. Repeatable.")
@click.option("--priority", help="urgent, high, medium, low or none.")
@click.option("--backlog", is_flag=True, hidden=True)
@click.option("--in-progress", "in_progress", is_flag=True, hidden=True)
@click.pass_context
def issues(
    ctx,
    unblocked,
    all_states,
    open_only,
    mine,
    statuses,
    project,
    milestone,
    labels,
    priority,
    backlog,
    in_progress,
):
    """List issues (backlog + todo unless a mode is given)."""
    if ctx.invoked_subcommand is not None:
        return

    # Deprecated flags are shorthands for --status
    statuses = list(statuses)
    if backlog:
        statuses.append("backlog")
    if in_progress:
        statuses.append("in-progress")

    @run_async
    async def list_issues():
        async with open_api(ctx.obj) as linear_api:
            await IssueCommands(linear_api, ctx.obj).list_issues(
                unblocked=unblocked,
                all_states=all_states,
                open_only=open_only,
                mine=mine,
                statuses=statuses,
                project=project,
                milestone=milestone,
                labels=labels,
                priority=priority,
            )

    list_issues()


@issues.command("reorder")
@click.argument("issue_ids", nargs=-1)
@click.pass_obj
@run_async
async def issues_reorder(config, issue_ids):
    """Rank issues in the given order, first highest."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).reorder_issues(issue_ids)


@cli.group()
def issue():
    """Show, create and change single issues."""
    pass


@issue.command("show")
@click.argument("issue_id")
@click.pass_obj
@run_async
async def issue_show(config, issue_id):
    """Show an issue with its context, relations and comments."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).show_issue(issue_id)


@issue.command("create")
@click.argument("title_arg", metavar="TITLE", required=False)
@click.option("-t", "--title", help="Issue title.")
@click.option("-d", "--description", default="", help="Markdown description.")
@click.option("-p", "--project", help="Project name or alias.")
@click.option("--milestone", help="Milestone name or alias.")
@click.option("--parent", help="Parent issue identifier.")
@click.option("--assign", is_flag=True, help="Assign to yourself.")
@click.option("-e", "--estimate", help="XS, S, M, L or XL.")
@click.option("--priority", help="urgent, high, medium, low or none.")
@click.option("-l", "--label", "labels", multiple=True, help="Label name. Repeatable.")
@click.option("--blocks", multiple=True, help="Issue this one blocks. Repeatable.")
@click.option("--blocked-by", "blocked_by", multiple=True, help="Issue blocking this one. Repeatable.")
@click.pass_obj
@run_async
async def issue_create(
    config,
    title_arg,
    title,
    description,
    project,
    milestone,
    parent,
    assign,
    estimate,
    priority,
    labels,
    blocks,
    blocked_by,
):
    """Create an issue."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).create_issue(
            title=title or title_arg,
            description=description,
            project=project,
            milestone=milestone,
            parent=parent,
            assign=assign,
            estimate=estimate,
            priority=priority,
            labels=labels,
            blocks=blocks,
            blocked_by=blocked_by,
        )


@issue.command("update")
@click.argument("issue_id")
@click.option("-t", "--title", help="New title.")
@click.option("-d", "--description", help="Replace the description.")
@click.option("-s", "--status", help="Workflow state name (substring).")
@click.option("-p", "--project", help="Project name or alias.")
@click.option("--milestone", help="Milestone name or alias.")
@click.option("--priority", help="urgent, high, medium, low or none.")
@click.option("-e", "--estimate", help="XS, S, M, L or XL.")
@click.option("-l", "--label", "labels", multiple=True, help="Label name. Repeatable.")
@click.option("--assign", is_flag=True, help="Assign to yourself.")
@click.option("--parent", help="Parent issue identifier.")
@click.option("-a", "--append", help="Append text to the description.")
@click.option("--check", help="Check the checklist item best matching this text.")
@click.option("--uncheck", help="Uncheck the checklist item best matching this text.")
@click.option("--blocks", multiple=True, help="Issue this one blocks. Repeatable.")
@click.option("--blocked-by", "blocked_by", multiple=True, help="Issue blocking this one. Repeatable.")
@click.pass_obj
@run_async
async def issue_update(config, issue_id, **options):
    """Update fields, checklist items or relations of an issue."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).update_issue(issue_id, **options)


@issue.command("start")
@click.argument("issue_id")
@click.pass_obj
@run_async
async def issue_start(config, issue_id):
    """Mark an issue in progress and assign it to yourself."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).start_issue(issue_id)


@issue.command("close")
@click.argument("issue_id")
@click.pass_obj
@run_async
async def issue_close(config, issue_id):
    """Move an issue to the completed state."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).close_issue(issue_id)


@issue.command("comment")
@click.argument("issue_id")
@click.argument("body", nargs=-1)
@click.pass_obj
@run_async
async def issue_comment(config, issue_id, body):
    """Add a comment to an issue."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).comment_issue(issue_id, " ".join(body))


@issue.command("move")
@click.argument("issue_id")
@click.option("--before", help="Place directly above this issue.")
@click.option("--after", help="Place directly below this issue.")
@click.pass_obj
@run_async
async def issue_move(config, issue_id, before, after):
    """Move an issue next to another one."""
    async with open_api(config) as linear_api:
        await IssueCommands(linear_api, config).move_issue(issue_id, before=before, after=after)


# Projects


@cli.group(invoke_without_command=True)
@click.option("-a", "--all", "show_all", is_flag=True, help="Include completed and canceled.")
@click.pass_context
def projects(ctx, show_all):
    """List projects."""
    if ctx.invoked_subcommand is not None:
        return

    @run_async
    async def list_projects():
        async with open_api(ctx.obj) as linear_api:
            await ProjectCommands(linear_api, ctx.obj).list_projects(show_all=show_all)

    list_projects()


@projects.command("reorder")
@click.argument("names", nargs=-1)
@click.pass_obj
@run_async
async def projects_reorder(config, names):
    """Rank projects in the given order, first highest."""
    async with open_api(config) as linear_api:
        await ProjectCommands(linear_api, config).reorder_projects(names)


@cli.group()
def project():
    """Show, create and rank single projects."""
    pass


@project.command("show")
@click.argument("name")
@click.pass_obj
@run_async
async def project_show(config, name):
    """Show a project and its issues by state."""
    async with open_api(config) as linear_api:
        await ProjectCommands(linear_api, config).show_project(name)


@project.command("create")
@click.argument("name_arg", metavar="NAME", required=False)
@click.option("-n", "--name", help="Project name.")
@click.option("-d", "--description", default="", help="Project description.")
@click.pass_obj
@run_async
async def project_create(config, name_arg, name, description):
    """Create a project."""
    name = name or name_arg
    if not name:
        raise LinearCLIError("Name is required")
    async with open_api(config) as linear_api:
        await ProjectCommands(linear_api, config).create_project(name, description)


@project.command("complete")
@click.argument("name")
@click.pass_obj
@run_async
async def project_complete(config, name):
    """Mark a project completed."""
    async with open_api(config) as linear_api:
        await ProjectCommands(linear_api, config).complete_project(name)


@project.command("move")
@click.argument("name")
@click.option("--before", help="Place directly above this project.")
@click.option("--after", help="Place directly below this project.")
@click.pass_obj
@run_async
async def project_move(config, name, before, after):
    """Move a project next to another one."""
    async with open_api(config) as linear_api:
        await ProjectCommands(linear_api, config).move_project(name, before=before, after=after)


# Milestones


@cli.group(invoke_without_command=True)
@click.option("-p", "--project", help="Only this project (name or alias).")
@click.option("-a", "--all", "show_all", is_flag=True, help="Include closed projects.")
@click.pass_context
def milestones(ctx, project, show_all):
    """List milestones grouped by project."""
    if ctx.invoked_subcommand is not None:
        return

    @run_async
    async def list_milestones():
        async with open_api(ctx.obj) as linear_api:
            await MilestoneCommands(linear_api, ctx.obj).list_milestones(
                project=project, show_all=show_all
            )

    list_milestones()


@milestones.command("reorder")
@click.argument("names", nargs=-1)
@click.option("-p", "--project", help="Project owning the milestones.")
@click.pass_obj
@run_async
async def milestones_reorder(config, names, project):
    """Rank milestones of one project in the given order."""
    async with open_api(config) as linear_api:
        await MilestoneCommands(linear_api, config).reorder_milestones(names, project)


@cli.group()
def milestone():
    """Show, create and rank single milestones."""
    pass


@milestone.command("show")
@click.argument("name")
@click.pass_obj
@run_async
async def milestone_show(config, name):
    """Show a milestone and its issues."""
    async with open_api(config) as linear_api:
        await MilestoneCommands(linear_api, config).show_milestone(name)


@milestone.command("create")
@click.argument("name_arg", metavar="NAME", required=False)
@click.option("-n", "--name", help="Milestone name.")
@click.option("-p", "--project", help="Project name or alias.")
@click.option("-d", "--description", help="Milestone description.")
@click.option("--target-date", help="Target date, YYYY-MM-DD.")
@click.pass_obj
@run_async
async def milestone_create(config, name_arg, name, project, description, target_date):
    """Create a milestone in a project."""
    name = name or name_arg
    if not name:
        raise LinearCLIError("Milestone name required")
    async with open_api(config) as linear_api:
        await MilestoneCommands(linear_api, config).create_milestone(
            name, project, description=description, target_date=target_date
        )


@milestone.command("move")
@click.argument("name")
@click.option("--before", help="Place directly above this milestone.")
@click.option("--after", help="Place directly below this milestone.")
@click.option("-p", "--project", help="Project owning the milestone.")
@click.pass_obj
@run_async
async def milestone_move(config, name, before, after, project):
    """Move a milestone next to another one in its project."""
    async with open_api(config) as linear_api:
        await MilestoneCommands(linear_api, config).move_milestone(
            name, before=before, after=after, project=project
        )


# Labels


@cli.command()
@click.pass_obj
@run_async
async def labels(config):
    """List labels."""
    async with open_api(config) as linear_api:
        await LabelCommands(linear_api, config).list_labels()


@cli.group()
def label():
    """Create labels."""
    pass


@label.command("create")
@click.argument("name_arg", metavar="NAME", required=False)
@click.option("-n", "--name", help="Label name.")
@click.option("-d", "--description", help="Label description.")
@click.option("-c", "--color", help="Hex color, e.g. #FF0000.")
@click.pass_obj
@run_async
async def label_create(config, name_arg, name, description, color):
    """Create a label."""
    name = name or name_arg
    if not name:
        raise LinearCLIError("Name is required")
    async with open_api(config) as linear_api:
        await LabelCommands(linear_api, config).create_label(name, description, color)


# Aliases


@cli.command()
@click.argument("code", required=False)
@click.argument("name", required=False)
@click.option("-l", "--list", "show_list", is_flag=True, help="List aliases.")
@click.option("-r", "--remove", "remove_code", metavar="CODE", help="Remove an alias.")
@click.pass_obj
@run_async
async def alias(config, code, name, show_list, remove_code):
    """Map a short CODE to a project or milestone name."""
    if show_list or not (code or remove_code):
        if not config.aliases:
            await AliasCommands(config).list_aliases()
            return
        async with open_api(config) as linear_api:
            await AliasCommands(config, linear_api).list_aliases()
        return

    if remove_code:
        AliasCommands(config).remove_alias(remove_code)
        return

    if not name:
        raise LinearCLIError(
            'Code and name required. Usage: linear alias CODE "Project or Milestone Name"'
        )
    AliasCommands(config).set_alias(code, name)


# Roadmap and git workflow


@cli.command()
@click.option("-a", "--all", "show_all", is_flag=True, help="Include closed projects.")
@click.pass_obj
@run_async
async def roadmap(config, show_all):
    """Projects by rank with milestones and progress."""
    async with open_api(config) as linear_api:
        await RoadmapCommands(linear_api, config).roadmap(show_all=show_all)


@cli.command()
@click.argument("issue_id")
@click.pass_obj
@run_async
async def branch(config, issue_id):
    """Create and check out a branch named after an issue."""
    async with open_api(config) as linear_api:
        await WorkflowCommands(linear_api, config).branch(issue_id)


@cli.command("next")
@click.option("--dry-run", is_flag=True, help="Print the plan without creating anything.")
@click.pass_obj
@run_async
async def next_issue(config, dry_run):
    """Pick an unblocked issue and open a worktree for it."""
    async with open_api(config) as linear_api:
        await WorkflowCommands(linear_api, config).next(dry_run=dry_run)


@cli.command()
@click.argument("issue_id", required=False)
@click.option("--no-close", is_flag=True, help="Leave the issue open.")
@click.option("--keep-branch", is_flag=True, help="Do not delete the branch on cleanup.")
@click.pass_obj
@run_async
async def done(config, issue_id, no_close, keep_branch):
    """Close the current issue and print worktree cleanup commands."""
    async with open_api(config) as linear_api:
        await WorkflowCommands(linear_api, config).done(
            issue_id, close=not no_close, keep_branch=keep_branch
        )


@cli.command()
@click.option("--no-github", is_flag=True, help="Skip GitHub activity.")
@click.pass_obj
@run_async
async def standup(config, no_github):
    """Yesterday's work, today's work and blockers."""
    async with open_api(config) as linear_api:
        await WorkflowCommands(linear_api, config).standup(github=not no_github)


# Authentication


@cli.command()
@click.pass_obj
@run_async
async def login(config):
    """Save an API key and team to a local or global config file."""
    await AuthCommands(config, api_factory=LinearAPI).login()


@cli.command()
@click.pass_obj
@report_errors
def logout(config):
    """Remove the nearest config file."""
    AuthCommands(config).logout()


@cli.command()
@click.pass_obj
@run_async
async def whoami(config):
    """Show the current user, team and config file."""
    async with open_api(config) as linear_api:
        await AuthCommands(config).whoami(linear_api)


def main():
    cli()


if __name__ == "__main__":
    main()
