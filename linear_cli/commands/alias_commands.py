# linear_cli/commands/alias_commands.py

from typing import Optional

import click

from ..api import LinearAPI
from ..config import Config, remove_alias, save_alias
from ..matching import name_matches


class AliasCommands:
    """
    Manage alias codes for project and milestone names.

    Mutations only touch the local config file and need no API access;
    listing fetches projects to label each target as project or milestone.
    """

    def __init__(self, config: Config, linear_api: Optional[LinearAPI] = None):
        self.config = config
        self.linear_api = linear_api

    def set_alias(self, code: str, name: str) -> Config:
        self.config = save_alias(self.config, code, name)
        click.secho(f"Alias set: {code.upper()} -> {name}", fg="green")
        return self.config

    def remove_alias(self, code: str) -> Config:
        self.config = remove_alias(self.config, code)
        click.secho(f"Removed alias: {code.upper()}", fg="green")
        return self.config

    async def list_aliases(self):
        if not self.config.aliases:
            click.echo("No aliases defined.")
            click.echo('Usage: linear alias CODE "Project or Milestone Name"')
            return

        projects = await self.linear_api.get_projects(self.config.team_key)

        click.secho("Aliases:\n", bold=True)
        for code, target in self.config.aliases.items():
            if any(name_matches(p.name, target) for p in projects):
                kind = click.style("project", fg="blue")
            else:
                kind = click.style("milestone", fg="yellow")
            click.echo(f"  {click.style(code, bold=True)} -> {target} ({kind})")
