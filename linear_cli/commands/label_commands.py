# linear_cli/commands/label_commands.py

from typing import Optional

import click

from ..api import LinearAPI
from ..config import Config
from ..exceptions import EntityNotFound
from ..utils import format_table
from .issue_commands import require_success


class LabelCommands:
    def __init__(self, linear_api: LinearAPI, config: Config):
        self.linear_api = linear_api
        self.team_key = config.team_key

    async def list_labels(self):
        labels = await self.linear_api.get_labels(self.team_key)

        click.secho("Labels:\n", bold=True)
        if not labels:
            click.echo('No labels found. Create one with: linear label create "name"')
            return
        click.echo(format_table([[l.name, l.description or "-"] for l in labels]))

    async def create_label(
        self, name: str, description: Optional[str] = None, color: Optional[str] = None
    ):
        team_id = await self.linear_api.get_team_id(self.team_key)
        if not team_id:
            raise EntityNotFound("Team", self.team_key)

        data = {"teamId": team_id, "name": name}
        if description:
            data["description"] = description
        if color:
            data["color"] = color

        require_success(await self.linear_api.create_label(data), "create label")
        click.secho(f"Created label: {name}", fg="green")
