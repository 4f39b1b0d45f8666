"""Shared fixtures and factories.

The project root is added to sys.path so ``import linear_cli`` works without an
editable install.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from linear_cli.config import Config  # noqa: E402
from linear_cli.models import (  # noqa: E402
    LinearIssue,
    LinearIssueRelation,
    LinearMilestone,
    LinearProject,
    LinearUser,
    LinearWorkflowState,
)

VIEWER = LinearUser(id="user-me", name="Ada Lovelace", email="ada@example.com")
OTHER = LinearUser(id="user-other", name="Grace Hopper", email="grace@example.com")

STATE_NAMES = {
    "backlog": "Backlog",
    "unstarted": "Todo",
    "started": "In Progress",
    "completed": "Done",
    "canceled": "Canceled",
}


def make_issue(
    identifier,
    title=None,
    state="unstarted",
    state_name=None,
    priority=0,
    sort_order=0.0,
    assignee=None,
    labels=(),
    project=None,
    project_id=None,
    milestone=None,
    milestone_id=None,
    blocks=(),
    completed_at=None,
):
    """Build a LinearIssue; ``blocks`` lists identifiers this issue blocks."""
    return LinearIssue(
        identifier=identifier,
        title=title or f"Title of {identifier}",
        state=LinearWorkflowState(name=state_name or STATE_NAMES.get(state, state), type=state),
        id=f"id-{identifier}",
        priority=priority,
        sort_order=sort_order,
        assignee=assignee,
        project_id=project_id,
        project_name=project,
        milestone_id=milestone_id,
        milestone_name=milestone,
        labels=list(labels),
        relations=[
            LinearIssueRelation(
                type="blocks",
                related_identifier=target,
                related_state=LinearWorkflowState(name="Todo", type="unstarted"),
            )
            for target in blocks
        ],
        completed_at=completed_at,
    )


def make_project(name, sort_order=0.0, state="started", milestones=(), project_id=None):
    project_id = project_id or f"project-{name}"
    return LinearProject(
        id=project_id,
        name=name,
        state=state,
        sort_order=sort_order,
        milestones=[
            LinearMilestone(
                id=f"milestone-{m_name}",
                name=m_name,
                sort_order=m_sort,
                status="planned",
                project_id=project_id,
            )
            for m_name, m_sort in milestones
        ],
    )


@pytest.fixture
def config(tmp_path):
    """Authenticated config backed by a local file in tmp_path."""
    config_file = tmp_path / ".linear"
    config_file.write_text("api_key=lin_api_test\nteam=ENG\n", encoding="utf-8")
    return Config(
        api_key="lin_api_test",
        team_key="ENG",
        config_file=config_file,
        local_path=config_file,
        global_path=tmp_path / "home" / ".linear",
    )


@pytest.fixture
def fake_api():
    """AsyncMock standing in for an entered LinearAPI."""
    api = AsyncMock()
    api.get_viewer.return_value = VIEWER
    api.get_issues.return_value = []
    api.get_projects.return_value = []
    api.get_labels.return_value = []
    api.get_workflow_states.return_value = []
    api.get_team_id.return_value = "team-uuid"
    return api


@pytest.fixture
def patched_api(monkeypatch, fake_api):
    """Make ``linear_cli.main.LinearAPI(...)`` enter into ``fake_api``."""
    api_class = MagicMock()
    api_class.return_value.__aenter__.return_value = fake_api
    api_class.return_value.__aexit__.return_value = False
    monkeypatch.setattr("linear_cli.main.LinearAPI", api_class)
    return fake_api
