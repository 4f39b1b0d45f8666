# linear_cli/models.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import CLOSED_PROJECT_STATES, CLOSED_STATE_TYPES


def _nodes(data: Optional[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    """Return ``data[key]["nodes"]`` tolerating missing connections."""
    if not data:
        return []
    connection = data.get(key) or {}
    return connection.get("nodes") or []


@dataclass
class LinearUser:
    id: str
    name: str = ""
    email: Optional[str] = None

    @classmethod
    def from_node(cls, node: Optional[Dict[str, Any]]) -> Optional["LinearUser"]:
        if not node:
            return None
        return cls(id=node.get("id", ""), name=node.get("name", ""), email=node.get("email"))


@dataclass
class LinearTeam:
    id: str
    name: str
    key: str

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearTeam":
        return cls(id=node.get("id", ""), name=node.get("name", ""), key=node.get("key", ""))


@dataclass
class LinearWorkflowState:
    name: str
    type: str  # 'backlog', 'unstarted', 'started', 'completed', 'canceled', 'triage'
    id: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.type in CLOSED_STATE_TYPES

    @classmethod
    def from_node(cls, node: Optional[Dict[str, Any]]) -> "LinearWorkflowState":
        node = node or {}
        return cls(name=node.get("name", ""), type=node.get("type", ""), id=node.get("id"))


@dataclass
class LinearLabel:
    id: str
    name: str
    color: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearLabel":
        return cls(
            id=node.get("id", ""),
            name=node.get("name", ""),
            color=node.get("color"),
            description=node.get("description"),
        )


@dataclass
class LinearComment:
    body: str
    created_at: str
    author: str

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearComment":
        user = node.get("user") or {}
        return cls(
            body=node.get("body", ""),
            created_at=node.get("createdAt", ""),
            author=user.get("name", "unknown"),
        )


@dataclass
class LinearIssueRelation:
    type: str  # 'blocks', 'is_blocked_by', 'related', 'duplicate'
    related_identifier: str
    related_title: Optional[str] = None
    related_state: Optional[LinearWorkflowState] = None

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearIssueRelation":
        related = node.get("relatedIssue") or {}
        state = related.get("state")
        return cls(
            type=node.get("type", ""),
            related_identifier=related.get("identifier", ""),
            related_title=related.get("title"),
            related_state=LinearWorkflowState.from_node(state) if state else None,
        )

    @classmethod
    def from_inverse_node(cls, node: Dict[str, Any]) -> "LinearIssueRelation":
        """An incoming relation, seen from its target. Incoming ``blocks`` reads as ``is_blocked_by``."""
        source = node.get("issue") or {}
        state = source.get("state")
        rel_type = node.get("type", "")
        return cls(
            type="is_blocked_by" if rel_type == "blocks" else rel_type,
            related_identifier=source.get("identifier", ""),
            related_title=source.get("title"),
            related_state=LinearWorkflowState.from_node(state) if state else None,
        )


@dataclass
class LinearMilestone:
    id: str
    name: str
    sort_order: float = 0.0
    description: Optional[str] = None
    target_date: Optional[str] = None
    status: Optional[str] = None
    project_id: Optional[str] = None

    @classmethod
    def from_node(
        cls, node: Dict[str, Any], project_id: Optional[str] = None
    ) -> "LinearMilestone":
        return cls(
            id=node.get("id", ""),
            name=node.get("name", ""),
            sort_order=node.get("sortOrder") or 0.0,
            description=node.get("description"),
            target_date=node.get("targetDate"),
            status=node.get("status"),
            project_id=project_id,
        )


@dataclass
class LinearIssue:
    identifier: str
    title: str
    state: LinearWorkflowState
    id: Optional[str] = None
    description: Optional[str] = None
    priority: int = 0
    estimate: Optional[float] = None
    sort_order: float = 0.0
    assignee: Optional[LinearUser] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    milestone_id: Optional[str] = None
    milestone_name: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    relations: List[LinearIssueRelation] = field(default_factory=list)
    completed_at: Optional[str] = None
    url: Optional[str] = None
    parent: Optional["LinearIssue"] = None
    children: List["LinearIssue"] = field(default_factory=list)
    comments: List[LinearComment] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.identifier

    @property
    def is_closed(self) -> bool:
        return self.state.is_closed

    def is_assigned_to(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.assignee is not None and self.assignee.id == user_id

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearIssue":
        project = node.get("project") or {}
        milestone = node.get("projectMilestone") or {}
        parent = node.get("parent")
        return cls(
            id=node.get("id"),
            identifier=node.get("identifier", ""),
            title=node.get("title", ""),
            state=LinearWorkflowState.from_node(node.get("state")),
            description=node.get("description"),
            priority=node.get("priority") or 0,
            estimate=node.get("estimate"),
            sort_order=node.get("sortOrder") or 0.0,
            assignee=LinearUser.from_node(node.get("assignee")),
            project_id=project.get("id"),
            project_name=project.get("name"),
            milestone_id=milestone.get("id"),
            milestone_name=milestone.get("name"),
            labels=[label.get("name", "") for label in _nodes(node, "labels")],
            relations=[
                LinearIssueRelation.from_node(rel) for rel in _nodes(node, "relations")
            ]
            + [
                LinearIssueRelation.from_inverse_node(rel)
                for rel in _nodes(node, "inverseRelations")
                if rel.get("type") == "blocks"
            ],
            completed_at=node.get("completedAt"),
            url=node.get("url"),
            parent=cls.from_node(parent) if parent else None,
            children=[cls.from_node(child) for child in _nodes(node, "children")],
            comments=[LinearComment.from_node(c) for c in _nodes(node, "comments")],
        )


@dataclass
class LinearProject:
    id: str
    name: str
    description: Optional[str] = None
    state: Optional[str] = None  # 'planned', 'started', 'paused', 'completed', 'canceled'
    progress: float = 0.0
    priority: int = 0
    sort_order: float = 0.0
    start_date: Optional[str] = None
    target_date: Optional[str] = None
    url: Optional[str] = None
    milestones: List[LinearMilestone] = field(default_factory=list)
    issues: List[LinearIssue] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return self.state in CLOSED_PROJECT_STATES

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "LinearProject":
        project_id = node.get("id", "")
        return cls(
            id=project_id,
            name=node.get("name", ""),
            description=node.get("description"),
            state=node.get("state"),
            progress=node.get("progress") or 0.0,
            priority=node.get("priority") or 0,
            sort_order=node.get("sortOrder") or 0.0,
            start_date=node.get("startDate"),
            target_date=node.get("targetDate"),
            url=node.get("url"),
            milestones=[
                LinearMilestone.from_node(m, project_id)
                for m in _nodes(node, "projectMilestones")
            ],
            issues=[LinearIssue.from_node(i) for i in _nodes(node, "issues")],
        )
