# linear_cli/ordering.py

"""
Drag-and-drop style ordering over sibling entities.

Siblings are ranked by a floating-point sort key, highest first. A full
reorder hands out fresh keys above the current maximum; a single move takes the
midpoint between the anchor and its neighbour, or steps past the anchor when
it sits at the edge. Keys are never renormalised, so repeated insertion between
the same two neighbours eventually runs out of float precision.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from tqdm.asyncio import tqdm_asyncio

from .api import LinearAPI
from .config import SORT_STEP
from .exceptions import (
    EntityNotFound,
    InsufficientTargets,
    LinearAPIError,
    LinearCLIError,
    MissingAnchor,
    ReorderFailed,
)
from .logger import logger
from .matching import find_by_name, find_issue
from .models import LinearIssue, LinearMilestone, LinearProject

T = TypeVar("T")


class Direction(Enum):
    BEFORE = "before"
    AFTER = "after"


def sort_key(entity) -> float:
    return entity.sort_order or 0


def full_reorder_keys(siblings: Sequence[T], count: int, step: float = SORT_STEP) -> List[float]:
    """
    Keys for ``count`` targets listed in order, first target highest.

    Starts one step above the largest existing key and descends by ``step``.
    """
    base = max((sort_key(s) for s in siblings), default=0) + step
    return [base - i * step for i in range(count)]


def move_key(
    siblings: Sequence[T],
    target: T,
    anchor: T,
    direction: Direction,
    step: float = SORT_STEP,
) -> float:
    """
    Compute the key that places ``target`` directly before or after ``anchor``.

    :param siblings: The full sibling set, target included
    :param target: Entity being moved
    :param anchor: Entity to move next to
    :param direction: Direction.BEFORE or Direction.AFTER
    :param step: Offset used when the anchor has no neighbour on that side
    :return: New sort key for ``target``
    """
    ordered = sorted(
        (s for s in siblings if s is not target), key=sort_key, reverse=True
    )
    index = next(i for i, s in enumerate(ordered) if s is anchor)
    anchor_key = sort_key(anchor)

    if direction is Direction.BEFORE:
        neighbour = ordered[index - 1] if index > 0 else None
        if neighbour is None:
            return anchor_key + step
    else:
        neighbour = ordered[index + 1] if index + 1 < len(ordered) else None
        if neighbour is None:
            return anchor_key - step

    return (anchor_key + sort_key(neighbour)) / 2


def resolve_direction(before: Optional[str], after: Optional[str]) -> Tuple[Direction, str]:
    """Turn --before/--after options into (direction, anchor name); --before wins."""
    if before:
        return Direction.BEFORE, before
    if after:
        return Direction.AFTER, after
    raise MissingAnchor()


class SiblingSet(ABC, Generic[T]):
    """How one kind of entity is fetched, looked up by name and re-keyed."""

    kind = "Item"

    @abstractmethod
    async def fetch(self) -> List[T]:
        pass

    @abstractmethod
    def find(self, siblings: Sequence[T], name: str) -> Optional[T]:
        pass

    @abstractmethod
    async def persist(self, entity: T, sort_order: float):
        pass

    def label(self, entity: T) -> str:
        return entity.name

    def require(self, siblings: Sequence[T], name: str, kind: Optional[str] = None) -> T:
        match = self.find(siblings, name)
        if match is None:
            raise EntityNotFound(kind or self.kind, name)
        return match


@dataclass
class MoveResult(Generic[T]):
    entity: T
    anchor: T
    direction: Direction
    sort_order: float


class SortOrderEngine(Generic[T]):
    def __init__(self, siblings: SiblingSet, step: float = SORT_STEP):
        self.siblings = siblings
        self.step = step

    async def reorder_all(self, names: Sequence[str]) -> List[T]:
        """
        Re-key the named siblings so they read back in the given order.

        Updates are sent concurrently and are not rolled back when some fail;
        a ReorderFailed lists which members were and were not updated.

        :param names: Names (or identifiers) in the desired order
        :return: Matched entities in the given order
        """
        if len(names) < 2:
            raise InsufficientTargets(self.siblings.kind)

        siblings = await self.siblings.fetch()
        ordered = []
        for name in names:
            entity = self.siblings.require(siblings, name)
            if any(entity is seen for seen in ordered):
                logger.warning(f"Ignoring repeated {self.siblings.kind.lower()}: {name}")
                continue
            ordered.append(entity)
        if len(ordered) < 2:
            raise InsufficientTargets(self.siblings.kind)

        keys = full_reorder_keys(siblings, len(ordered), self.step)

        async def persist(entity, key):
            try:
                await self.siblings.persist(entity, key)
            except LinearCLIError as e:
                return e
            return None

        results = await tqdm_asyncio.gather(
            *[persist(entity, key) for entity, key in zip(ordered, keys)],
            desc=f"Reordering {self.siblings.kind.lower()}s",
            leave=False,
            disable=None,
        )

        failed = [
            (self.siblings.label(entity), error.message)
            for entity, error in zip(ordered, results)
            if error is not None
        ]
        if failed:
            applied = [
                self.siblings.label(entity)
                for entity, error in zip(ordered, results)
                if error is None
            ]
            raise ReorderFailed(applied, failed)

        logger.debug(
            f"Reordered {len(ordered)} {self.siblings.kind.lower()}s from key {keys[0]}"
        )
        return ordered

    async def move_one(
        self, name: str, before: Optional[str] = None, after: Optional[str] = None
    ) -> MoveResult:
        """
        Move one sibling directly before or after another.

        :param name: Entity to move
        :param before: Anchor to move in front of
        :param after: Anchor to move behind
        :return: MoveResult with the new key
        """
        direction, anchor_name = resolve_direction(before, after)

        siblings = await self.siblings.fetch()
        target = self.siblings.require(siblings, name)
        anchor = self.siblings.require(
            siblings, anchor_name, kind=f"Target {self.siblings.kind.lower()}"
        )
        if anchor is target:
            raise LinearCLIError(
                f"Cannot move {self.siblings.label(target)} relative to itself"
            )

        new_key = move_key(siblings, target, anchor, direction, self.step)
        if new_key == sort_key(anchor):
            logger.warning(
                f"{self.siblings.label(anchor)} and its neighbour share sort key {new_key}; "
                f"reorder them to give {self.siblings.label(target)} a distinct position"
            )
        await self.siblings.persist(target, new_key)
        logger.debug(f"Moved {self.siblings.label(target)} to sort key {new_key}")
        return MoveResult(entity=target, anchor=anchor, direction=direction, sort_order=new_key)


def _check_success(payload, action):
    if not payload or not payload.get("success"):
        raise LinearAPIError(f"Failed to {action}")


class IssueSiblings(SiblingSet[LinearIssue]):
    """Issues ranked team-wide, matched by exact identifier."""

    kind = "Issue"

    def __init__(self, linear_api: LinearAPI, team_key: str):
        self.linear_api = linear_api
        self.team_key = team_key

    async def fetch(self) -> List[LinearIssue]:
        return await self.linear_api.get_issues(self.team_key)

    def find(self, siblings, name):
        return find_issue(siblings, name)

    async def persist(self, entity, sort_order):
        result = await self.linear_api.update_issue(
            entity.identifier, {"sortOrder": sort_order}
        )
        _check_success(result, f"update {entity.identifier}")

    def label(self, entity):
        return entity.identifier


class ProjectSiblings(SiblingSet[LinearProject]):
    """Projects ranked team-wide, matched by name fragment."""

    kind = "Project"

    def __init__(self, linear_api: LinearAPI, team_key: str):
        self.linear_api = linear_api
        self.team_key = team_key

    async def fetch(self) -> List[LinearProject]:
        return await self.linear_api.get_projects(self.team_key)

    def find(self, siblings, name):
        return find_by_name(siblings, name)

    async def persist(self, entity, sort_order):
        result = await self.linear_api.update_project(entity.id, {"sortOrder": sort_order})
        _check_success(result, f"update project {entity.name}")


class MilestoneSiblings(SiblingSet[LinearMilestone]):
    """Milestones ranked within a single project."""

    kind = "Milestone"

    def __init__(self, linear_api: LinearAPI, project: LinearProject):
        self.linear_api = linear_api
        self.project = project

    async def fetch(self) -> List[LinearMilestone]:
        return list(self.project.milestones)

    def find(self, siblings, name):
        return find_by_name(siblings, name)

    async def persist(self, entity, sort_order):
        result = await self.linear_api.update_milestone(entity.id, {"sortOrder": sort_order})
        _check_success(result, f"update milestone {entity.name}")
