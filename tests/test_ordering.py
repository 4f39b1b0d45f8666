"""Tests for sort-key arithmetic and the reorder engine."""

import asyncio
from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import make_issue, make_project

from linear_cli.exceptions import (
    EntityNotFound,
    InsufficientTargets,
    LinearAPIError,
    LinearCLIError,
    MissingAnchor,
    ReorderFailed,
)
from linear_cli.matching import find_by_name
from linear_cli.ordering import (
    Direction,
    IssueSiblings,
    MilestoneSiblings,
    SiblingSet,
    SortOrderEngine,
    full_reorder_keys,
    move_key,
    resolve_direction,
)


@dataclass
class Item:
    name: str
    sort_order: float


class InMemorySiblings(SiblingSet):
    """Sibling set that persists keys onto the items themselves."""

    kind = "Project"

    def __init__(self, items, failing=()):
        self.items = items
        self.failing = set(failing)
        self.persisted = []

    async def fetch(self):
        return list(self.items)

    def find(self, siblings, name):
        return find_by_name(siblings, name)

    async def persist(self, entity, sort_order):
        if entity.name in self.failing:
            raise LinearAPIError("HTTP error: 500")
        entity.sort_order = sort_order
        self.persisted.append((entity.name, sort_order))


def read_back(items):
    return [i.name for i in sorted(items, key=lambda i: i.sort_order, reverse=True)]


@pytest.fixture
def items():
    return [Item("Alpha", 3000), Item("Bravo", 2000), Item("Charlie", 1000)]


class TestMoveKey:
    def test_midpoint_before(self, items):
        alpha, bravo, charlie = items
        assert move_key(items, charlie, bravo, Direction.BEFORE) == 2500

    def test_midpoint_after(self, items):
        alpha, bravo, charlie = items
        assert move_key(items, alpha, bravo, Direction.AFTER) == 1500

    def test_before_top_steps_above(self, items):
        alpha, bravo, charlie = items
        assert move_key(items, charlie, alpha, Direction.BEFORE) == 4000

    def test_after_bottom_steps_below(self, items):
        alpha, bravo, charlie = items
        assert move_key(items, alpha, charlie, Direction.AFTER) == 0

    def test_target_is_not_its_own_neighbour(self, items):
        """Moving Bravo after Alpha keeps it between Alpha and Charlie."""
        alpha, bravo, charlie = items
        assert move_key(items, bravo, alpha, Direction.AFTER) == 2000

    def test_missing_keys_count_as_zero(self):
        siblings = [Item("A", None), Item("B", 100)]
        assert move_key(siblings, siblings[1], siblings[0], Direction.AFTER) == -1000


class TestFullReorderKeys:
    def test_descending_from_above_current_max(self, items):
        assert full_reorder_keys(items, 3) == [4000, 3000, 2000]

    def test_empty_set(self):
        assert full_reorder_keys([], 2) == [1000, 0]


class TestResolveDirection:
    def test_before_wins(self):
        assert resolve_direction("X", "Y") == (Direction.BEFORE, "X")

    def test_after(self):
        assert resolve_direction(None, "Y") == (Direction.AFTER, "Y")

    def test_neither(self):
        with pytest.raises(MissingAnchor, match="--before or --after required"):
            resolve_direction(None, None)


class TestSortOrderEngine:
    def test_reorder_reads_back_in_given_order(self, items):
        siblings = InMemorySiblings(items)
        ordered = asyncio.run(SortOrderEngine(siblings).reorder_all(["char", "alp", "brav"]))

        assert [i.name for i in ordered] == ["Charlie", "Alpha", "Bravo"]
        assert read_back(items) == ["Charlie", "Alpha", "Bravo"]
        assert sorted(siblings.persisted) == [
            ("Alpha", 3000),
            ("Bravo", 2000),
            ("Charlie", 4000),
        ]

    def test_reorder_subset_starts_above_max(self, items):
        alpha, bravo, charlie = items
        asyncio.run(SortOrderEngine(InMemorySiblings(items)).reorder_all(["Charlie", "Bravo"]))

        assert (charlie.sort_order, bravo.sort_order, alpha.sort_order) == (4000, 3000, 3000)

    def test_reorder_requires_two_targets(self, items):
        siblings = InMemorySiblings(items)
        with pytest.raises(InsufficientTargets, match="At least 2 projects required"):
            asyncio.run(SortOrderEngine(siblings).reorder_all(["Alpha"]))
        assert siblings.persisted == []

    def test_repeated_name_counts_once(self, items):
        siblings = InMemorySiblings(items)
        with pytest.raises(InsufficientTargets, match="At least 2 projects required"):
            asyncio.run(SortOrderEngine(siblings).reorder_all(["Alpha", "alpha"]))
        assert siblings.persisted == []

    def test_repeated_name_is_skipped(self, items):
        siblings = InMemorySiblings(items)
        ordered = asyncio.run(
            SortOrderEngine(siblings).reorder_all(["Charlie", "Alpha", "charlie"])
        )

        assert [i.name for i in ordered] == ["Charlie", "Alpha"]
        assert sorted(siblings.persisted) == [("Alpha", 3000), ("Charlie", 4000)]

    def test_reorder_unknown_name_writes_nothing(self, items):
        siblings = InMemorySiblings(items)
        with pytest.raises(EntityNotFound, match="Project not found: Delta"):
            asyncio.run(SortOrderEngine(siblings).reorder_all(["Alpha", "Delta"]))
        assert siblings.persisted == []

    def test_partial_failure_reports_applied_and_failed(self, items):
        siblings = InMemorySiblings(items, failing=["Bravo"])

        with pytest.raises(ReorderFailed) as excinfo:
            asyncio.run(SortOrderEngine(siblings).reorder_all(["Charlie", "Bravo", "Alpha"]))

        assert excinfo.value.applied == ["Charlie", "Alpha"]
        assert excinfo.value.failed == [("Bravo", "HTTP error: 500")]
        assert "2 of 3" in excinfo.value.message

    def test_move_one(self, items):
        siblings = InMemorySiblings(items)
        result = asyncio.run(SortOrderEngine(siblings).move_one("Charlie", before="Bravo"))

        assert result.sort_order == 2500
        assert result.anchor.name == "Bravo"
        assert read_back(items) == ["Alpha", "Charlie", "Bravo"]

    def test_move_between_equal_keys_warns(self, monkeypatch):
        items = [Item("Alpha", 0), Item("Bravo", 0), Item("Charlie", 0)]
        logger = MagicMock()
        monkeypatch.setattr("linear_cli.ordering.logger", logger)

        result = asyncio.run(
            SortOrderEngine(InMemorySiblings(items)).move_one("Charlie", before="Bravo")
        )

        assert result.sort_order == 0
        assert "share sort key 0" in logger.warning.call_args.args[0]

    def test_move_unknown_anchor(self, items):
        with pytest.raises(EntityNotFound, match="Target project not found: Zulu"):
            asyncio.run(
                SortOrderEngine(InMemorySiblings(items)).move_one("Alpha", after="Zulu")
            )

    def test_move_relative_to_itself(self, items):
        with pytest.raises(LinearCLIError, match="relative to itself"):
            asyncio.run(
                SortOrderEngine(InMemorySiblings(items)).move_one("Alpha", after="Alpha")
            )


class TestIssueSiblings:
    def test_persists_sort_order_by_identifier(self):
        api = AsyncMock()
        api.get_issues.return_value = [
            make_issue("ENG-1", sort_order=30),
            make_issue("ENG-2", sort_order=20),
            make_issue("ENG-3", sort_order=10),
        ]
        api.update_issue.return_value = {"success": True}

        engine = SortOrderEngine(IssueSiblings(api, "ENG"))
        result = asyncio.run(engine.move_one("eng-3", before="ENG-1"))

        api.get_issues.assert_awaited_once_with("ENG")
        api.update_issue.assert_awaited_once_with("ENG-3", {"sortOrder": 1030})
        assert result.entity.identifier == "ENG-3"

    def test_identifier_must_match_exactly(self):
        api = AsyncMock()
        api.get_issues.return_value = [make_issue("ENG-12"), make_issue("ENG-13")]

        with pytest.raises(EntityNotFound, match="Issue not found: ENG-1"):
            asyncio.run(SortOrderEngine(IssueSiblings(api, "ENG")).reorder_all(["ENG-1", "ENG-12"]))

    def test_unsuccessful_payload_fails_reorder(self):
        api = AsyncMock()
        api.get_issues.return_value = [make_issue("ENG-1"), make_issue("ENG-2")]
        api.update_issue.side_effect = lambda identifier, fields: {"success": identifier != "ENG-1"}

        with pytest.raises(ReorderFailed) as excinfo:
            asyncio.run(SortOrderEngine(IssueSiblings(api, "ENG")).reorder_all(["ENG-2", "ENG-1"]))

        assert excinfo.value.failed == [("ENG-1", "Failed to update ENG-1")]


class TestMilestoneSiblings:
    def test_scoped_to_one_project(self):
        api = AsyncMock()
        api.update_milestone.return_value = {"success": True}
        project = make_project("Core", milestones=[("Alpha", 2), ("Beta", 1)])

        engine = SortOrderEngine(MilestoneSiblings(api, project))
        asyncio.run(engine.reorder_all(["Beta", "Alpha"]))

        api.update_milestone.assert_any_await("milestone-Beta", {"sortOrder": 1002})
        api.update_milestone.assert_any_await("milestone-Alpha", {"sortOrder": 2})
