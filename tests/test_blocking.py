"""Tests for the blocking graph and issue filtering."""

from conftest import OTHER, VIEWER, make_issue

from linear_cli.blocking import (
    IssueFilter,
    blocked_identifiers,
    filter_by_status,
    next_candidates,
    select_issues,
    sort_for_display,
    unblocked_issues,
)


def identifiers(issues):
    return [i.identifier for i in issues]


class TestUnblocked:
    def test_completed_blocker_still_blocks(self):
        issues = [
            make_issue("ENG-1", state="completed", blocks=["ENG-2"]),
            make_issue("ENG-2", state="unstarted"),
            make_issue("ENG-3", state="unstarted"),
        ]

        assert blocked_identifiers(issues) == {"ENG-2"}
        assert identifiers(unblocked_issues(issues)) == ["ENG-3"]

    def test_excludes_closed_issues(self):
        issues = [
            make_issue("ENG-1", state="canceled"),
            make_issue("ENG-2", state="started"),
            make_issue("ENG-3", state="backlog"),
        ]

        assert identifiers(unblocked_issues(issues)) == ["ENG-2", "ENG-3"]

    def test_blocker_outside_fetched_set_is_ignored(self):
        """Only relations recorded on fetched issues count."""
        issues = [make_issue("ENG-5", blocks=["ENG-99"]), make_issue("ENG-6")]

        assert identifiers(unblocked_issues(issues)) == ["ENG-5", "ENG-6"]


class TestFilters:
    def test_label_and_status_intersect(self):
        issues = [
            make_issue("A", labels=["bug"], state="unstarted"),
            make_issue("B", labels=["bug"], state="completed"),
            make_issue("C", labels=["feature"], state="unstarted"),
        ]
        issue_filter = IssueFilter(labels=["bug"], statuses=["todo"])

        heading, selected = select_issues(issues, issue_filter)

        assert heading == "Issues (todo)"
        assert identifiers(selected) == ["A"]

    def test_labels_match_any(self):
        issues = [
            make_issue("A", labels=["Bug"]),
            make_issue("B", labels=["feature"]),
            make_issue("C", labels=["chore"]),
        ]

        selected = IssueFilter(labels=["bug", "feature"]).apply(issues)

        assert identifiers(selected) == ["A", "B"]

    def test_status_matches_type_or_state_name(self):
        issues = [
            make_issue("A", state="started", state_name="In Review"),
            make_issue("B", state="started", state_name="In Progress"),
            make_issue("C", state="unstarted"),
        ]

        assert identifiers(filter_by_status(issues, ["in review"])) == ["A"]
        assert identifiers(filter_by_status(issues, ["in-progress"])) == ["A", "B"]
        assert identifiers(filter_by_status(issues, ["todo", "In Review"])) == ["A", "C"]

    def test_project_milestone_priority_and_mine(self):
        issues = [
            make_issue("A", project="Core Platform", milestone="Beta", priority=2, assignee=VIEWER),
            make_issue("B", project="Core Platform", milestone="GA", priority=2, assignee=VIEWER),
            make_issue("C", project="Website", milestone="Beta", priority=2, assignee=VIEWER),
            make_issue("D", project="Core Platform", milestone="Beta", priority=1, assignee=VIEWER),
            make_issue("E", project="Core Platform", milestone="Beta", priority=2, assignee=OTHER),
        ]
        issue_filter = IssueFilter(
            viewer_id=VIEWER.id,
            mine=True,
            project="core",
            milestone="beta",
            priority="High",
        )

        assert identifiers(issue_filter.apply(issues)) == ["A"]

    def test_unknown_priority_name_does_not_filter(self):
        issues = [make_issue("A", priority=1), make_issue("B", priority=0)]

        assert identifiers(IssueFilter(priority="whenever").apply(issues)) == ["A", "B"]


class TestSelectIssues:
    def setup_method(self):
        self.issues = [
            make_issue("ENG-1", state="backlog"),
            make_issue("ENG-2", state="unstarted", blocks=["ENG-3"]),
            make_issue("ENG-3", state="unstarted"),
            make_issue("ENG-4", state="started"),
            make_issue("ENG-5", state="completed"),
        ]

    def test_default_is_backlog_and_todo(self):
        heading, selected = select_issues(self.issues, IssueFilter())

        assert heading == "Issues (backlog + todo)"
        assert sorted(identifiers(selected)) == ["ENG-1", "ENG-2", "ENG-3"]

    def test_modes(self):
        assert select_issues(self.issues, IssueFilter(), unblocked=True)[0] == "Unblocked Issues"
        assert sorted(identifiers(select_issues(self.issues, IssueFilter(), unblocked=True)[1])) == [
            "ENG-1",
            "ENG-2",
            "ENG-4",
        ]

        heading, selected = select_issues(self.issues, IssueFilter(), all_states=True)
        assert heading == "All Issues"
        assert len(selected) == 5

        heading, selected = select_issues(self.issues, IssueFilter(), open_only=True)
        assert heading == "Open Issues"
        assert "ENG-5" not in identifiers(selected)

    def test_status_filter_applies_within_mode(self):
        _, selected = select_issues(
            self.issues, IssueFilter(statuses=["in-progress"]), unblocked=True
        )

        assert identifiers(selected) == ["ENG-4"]


class TestDisplayOrder:
    def test_mine_then_priority_then_sort_key(self):
        issues = [
            make_issue("A", priority=0, sort_order=10),
            make_issue("B", priority=4, sort_order=10),
            make_issue("C", priority=1, sort_order=10),
            make_issue("D", priority=4, sort_order=50),
            make_issue("E", priority=0, assignee=VIEWER),
        ]

        ordered = sort_for_display(issues, VIEWER.id)

        assert identifiers(ordered) == ["E", "C", "D", "B", "A"]

    def test_next_candidates(self):
        issues = [make_issue(f"ENG-{n}") for n in range(20, 8, -1)]
        issues.append(make_issue("ENG-50", assignee=VIEWER))
        issues.append(make_issue("ENG-1", blocks=["ENG-50"], state="completed"))

        candidates = next_candidates(issues, VIEWER.id)

        assert len(candidates) == 10
        assert identifiers(candidates)[:2] == ["ENG-10", "ENG-11"]
