"""Tests for name resolution and checklist toggling."""

import pytest
from conftest import make_issue, make_project

from linear_cli.exceptions import EntityNotFound, NoMatchingChecklistItem
from linear_cli.matching import (
    EXACT_MATCH_SCORE,
    checklist_score,
    find_by_name,
    find_issue,
    find_milestone,
    require_by_name,
    toggle_checklist_item,
)
from linear_cli.models import LinearLabel

DESCRIPTION = "\n".join(
    [
        "## Acceptance",
        "- [ ] Write migration script",
        "- [x] Add feature flag",
        "- [ ] Update API documentation",
        "",
        "Notes stay as they are.",
    ]
)


class TestNameLookup:
    def test_first_substring_match_wins(self):
        projects = [make_project("Core Platform"), make_project("Core Tools")]

        assert find_by_name(projects, "core").name == "Core Platform"
        assert find_by_name(projects, "TOOLS").name == "Core Tools"
        assert find_by_name(projects, "mobile") is None

    def test_require_by_name(self):
        labels = [LinearLabel(id="l1", name="bug")]

        assert require_by_name(labels, "Bug", "Label").id == "l1"
        with pytest.raises(EntityNotFound, match="Label not found: feature"):
            require_by_name(labels, "feature", "Label")

    def test_find_issue_is_exact(self):
        issues = [make_issue("ENG-12"), make_issue("ENG-1")]

        assert find_issue(issues, "eng-1").identifier == "ENG-1"
        assert find_issue(issues, "ENG-123") is None

    def test_find_milestone(self):
        core = make_project("Core", milestones=[("Alpha", 2), ("Beta", 1)])
        web = make_project("Web", milestones=[("Launch", 1), ("Beta Web", 0)])

        project, milestone = find_milestone([core, web], "launch")
        assert (project.name, milestone.name) == ("Web", "Launch")

        project, milestone = find_milestone([core, web], "beta", project=web)
        assert (project.name, milestone.name) == ("Web", "Beta Web")

        assert find_milestone([core, web], "alpha", project=web) == (None, None)


class TestChecklistScore:
    def test_exact_match(self):
        assert checklist_score("Add Feature Flag ", "add feature flag") == EXACT_MATCH_SCORE

    def test_containment_ratio(self):
        assert checklist_score("migration", "write migration script") == pytest.approx(9 / 22)

    def test_word_overlap(self):
        # "docs" is not contained in "documentation", but "api" and "update" are
        assert checklist_score("update api docs", "update api documentation") == pytest.approx(
            2 / 3
        )

    def test_no_overlap(self):
        assert checklist_score("deploy", "write migration script") == 0.0


class TestToggleChecklistItem:
    def test_check_best_match(self):
        toggle = toggle_checklist_item(DESCRIPTION, "update api docs")

        assert toggle.item == "Update API documentation"
        assert toggle.line_index == 3
        assert toggle.description == DESCRIPTION.replace(
            "- [ ] Update API documentation", "- [x] Update API documentation"
        )

    def test_only_unchecked_items_are_candidates(self):
        """The already-checked feature flag line is not eligible for checking."""
        with pytest.raises(NoMatchingChecklistItem) as excinfo:
            toggle_checklist_item(DESCRIPTION, "add feature flag")

        assert excinfo.value.candidates == [
            "- [ ] Write migration script",
            "- [ ] Update API documentation",
        ]

    def test_uncheck_accepts_uppercase_mark(self):
        description = "- [X] Ship it\n- [ ] Celebrate"

        toggle = toggle_checklist_item(description, "ship it", check=False)

        assert toggle.description == "- [ ] Ship it\n- [ ] Celebrate"

    def test_below_threshold(self):
        with pytest.raises(NoMatchingChecklistItem, match='No checkbox matching "rollback"'):
            toggle_checklist_item(DESCRIPTION, "rollback")

    def test_no_items_in_state(self):
        with pytest.raises(NoMatchingChecklistItem, match="No checked items found"):
            toggle_checklist_item("- [ ] Only open work", "open", check=False)

    def test_indented_items_keep_indentation(self):
        description = "Steps:\n  - [ ] nested step"

        toggle = toggle_checklist_item(description, "nested step")

        assert toggle.description == "Steps:\n  - [x] nested step"
