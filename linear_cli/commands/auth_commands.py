# linear_cli/commands/auth_commands.py

from pathlib import Path
from typing import Callable

import click

from ..api import LinearAPI
from ..config import (
    CONFIG_FILENAME,
    LINEAR_API_SETTINGS_URL,
    WORKTREE_INCLUDE_FILE,
    Config,
    ensure_line,
    write_fields,
)
from ..exceptions import ConfigurationError, LinearAPIError, LinearCLIError
from ..logger import logger
from ..utils import suggest_team_key
from .issue_commands import require_success


class AuthCommands:
    def __init__(self, config: Config, api_factory: Callable[[str], LinearAPI] = LinearAPI):
        self.config = config
        self.api_factory = api_factory

    async def login(self):
        """
        Capture an API key interactively, pick or create a team and save both.

        A local save also lists the config file in .gitignore and in the
        worktree include manifest.
        """
        click.secho("Linear CLI Login\n", bold=True)
        click.echo("Where would you like to save your credentials?\n")
        click.echo(f"  1. This project only (./{CONFIG_FILENAME})")
        click.echo(f"  2. Global, for all projects (~/{CONFIG_FILENAME})")
        click.echo("")

        location = click.prompt("Enter number", default="", show_default=False).strip()
        if location not in ("1", "2"):
            raise LinearCLIError("Please enter 1 or 2")
        save_global = location == "2"

        click.echo("\nTo authenticate, you'll need a Linear API key.")
        click.secho("(Create a new personal API key if you don't have one)\n", fg="bright_black")
        click.prompt(
            "Press Enter to open Linear's API settings in your browser",
            default="",
            show_default=False,
        )
        click.launch(LINEAR_API_SETTINGS_URL)

        api_key = click.prompt("\nPaste your API key", default="", show_default=False).strip()
        if not api_key:
            raise LinearCLIError("API key is required")

        click.echo("\nValidating...")
        async with self.api_factory(api_key) as linear_api:
            try:
                teams = await linear_api.get_teams()
            except LinearAPIError as e:
                raise ConfigurationError(
                    f"Invalid API key or no access to any teams ({e.message})"
                )
            if not teams:
                raise ConfigurationError("Invalid API key or no access to any teams")

            click.secho("Valid!\n", fg="green")
            click.secho("Select a team:\n", bold=True)
            for position, team in enumerate(teams, 1):
                click.echo(f"  {position}. {team.name} ({team.key})")
            click.echo(f"  {len(teams) + 1}. Create a new team...")
            click.echo("")

            selection = click.prompt("Enter number", type=int)
            if selection < 1 or selection > len(teams) + 1:
                raise LinearCLIError("Invalid selection")

            if selection == len(teams) + 1:
                team_key = await self._create_team(linear_api)
            else:
                team_key = teams[selection - 1].key

        path = self.config.global_path if save_global else self.config.local_path
        write_fields(path, {"api_key": api_key, "team": team_key})
        click.secho(f"\nSaved to {path}", fg="green")

        if not save_global:
            self._register_local_file(path.parent / ".gitignore")
            self._register_local_file(path.parent / WORKTREE_INCLUDE_FILE)

        click.echo("\nYou're ready to go! Try:")
        click.echo("  linear issues --unblocked")
        click.echo("  linear projects")

    async def _create_team(self, linear_api: LinearAPI) -> str:
        team_name = click.prompt("\nTeam name", default="", show_default=False).strip()
        if not team_name:
            raise LinearCLIError("Team name is required")

        suggested = suggest_team_key(team_name)
        team_key = click.prompt("Team key", default=suggested).strip().upper() or suggested

        require_success(await linear_api.create_team(team_name, team_key), "create team")
        click.secho(f"Created team: {team_name} ({team_key})", fg="green")
        return team_key

    def _register_local_file(self, path: Path):
        try:
            if ensure_line(path, CONFIG_FILENAME):
                click.secho(f"Added {CONFIG_FILENAME} to {path.name}", fg="green")
        except OSError as e:
            logger.warning(f"Could not update {path.name}: {e}")

    def logout(self):
        for path in (self.config.local_path, self.config.global_path):
            if path is not None and path.is_file():
                path.unlink()
                click.secho(f"Removed {path}", fg="green")
                return
        click.echo("No config file found.")

    async def whoami(self, linear_api: LinearAPI):
        user = await linear_api.get_viewer()
        click.echo(f"Logged in as: {user.name} <{user.email}>")
        click.echo(f"Team: {self.config.team_key}")
        click.echo(f"Config: {self.config.config_file or '(environment variables)'}")
