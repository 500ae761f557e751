import pytest

from domains.redmine.core.closed_status import ClosedStatusClassifier
from domains.redmine.core.models import AnalysisResult, Issue, TimeEntry
from domains.redmine.services.analysis_aggregator import (
    AnalysisAggregator,
    custom_field_text,
    round_float,
)
from fakes import issue, time_entry

CLOSED = ClosedStatusClassifier("status_name", ["Closed", "Resolved"])


def _aggregate(entries, issues, custom_fields=()):
    result = AnalysisResult(project={"id": 1, "name": "Alpha"})
    aggregator = AnalysisAggregator(CLOSED, custom_fields)
    return aggregator.aggregate(
        [TimeEntry.from_api(e) for e in entries],
        [Issue.from_api(i) for i in issues],
        result,
    )


def _example():
    entries = [
        time_entry(1, 2.0, issue_id=1),
        time_entry(2, 3.0, issue_id=1, user=(2, "Bob")),
        time_entry(3, 5.0, issue_id=2),
        time_entry(4, 1.0),
    ]
    issues = [issue(1, tracker="Bug"), issue(2, tracker="Feature", status="Closed")]
    return entries, issues


def test_round_float_rounds_half_up():
    assert round_float(2.345, 2) == 2.35
    assert round_float(1.005, 2) == 1.01
    assert round_float(2.344, 2) == 2.34
    assert round_float(0.125, 2) == 0.13
    assert round_float(10.0, 2) == 10.0


def test_end_to_end_example_totals_and_tie_break():
    entries, issues = _example()
    result = _aggregate(entries, issues)

    assert result.summary.total_hours == 11.0
    assert result.unlinked_hours == 1.0
    assert len(result.by_tracker) == 2
    assert sum(row.hours for row in result.by_tracker) == pytest.approx(10.0)
    # 5h each: equal hours rank by ascending name
    assert [row.tracker for row in result.by_tracker] == ["Bug", "Feature"]
    assert result.by_tracker[0].hours == 5.0
    assert result.by_tracker[0].issue_count == 1
    assert result.by_tracker[0].avg_hours == 5.0


def test_summary_counts():
    entries, issues = _example()
    summary = _aggregate(entries, issues).summary

    assert summary.total_issues == 2
    assert summary.closed_issues == 1
    assert summary.open_issues == 1
    assert summary.contributors == 2
    assert summary.avg_hours_per_person == 5.5
    assert summary.person_days == 1.38


def test_closed_date_strategy_uses_closed_on_only():
    issues = [
        Issue.from_api(issue(1, status="Closed")),
        Issue.from_api(issue(2, status="New", closed_on="2025-01-10T10:00:00Z")),
    ]
    classifier = ClosedStatusClassifier("closed_date")
    summary = AnalysisAggregator(classifier).summary([], issues)

    assert summary.closed_issues == 1
    assert classifier.is_closed(issues[1])
    assert not classifier.is_closed(issues[0])


def test_status_name_strategy_is_case_insensitive():
    classifier = ClosedStatusClassifier("status_name", ["Closed", "已解決"])

    assert classifier.is_closed(Issue.from_api(issue(1, status="closed")))
    assert classifier.is_closed(Issue.from_api(issue(2, status="已解決")))
    assert not classifier.is_closed(Issue.from_api(issue(3, status="In Progress")))


def test_unlinked_entries_excluded_from_issue_based_tables():
    entries = [time_entry(1, 4.0, issue_id=1), time_entry(2, 6.0)]
    issues = [issue(1, version=(10, "v1.0"), custom_fields={"Module": "Core"})]
    result = _aggregate(entries, issues)

    assert [row.hours for row in result.by_tracker] == [4.0]
    assert [(row.version, row.hours) for row in result.by_version] == [("v1.0", 4.0)]
    assert [(row.value, row.hours) for row in result.by_custom_field["Module"]] == [("Core", 4.0)]
    assert result.unlinked_hours == 6.0
    assert result.summary.total_hours == 10.0
    # user, activity and month views keep every entry
    assert sum(row.hours for row in result.by_user) == 10.0
    assert sum(row.hours for row in result.by_activity) == 10.0


def test_by_version_uses_none_sentinel():
    entries = [time_entry(1, 2.0, issue_id=1), time_entry(2, 3.0, issue_id=2), time_entry(3, 1.0, issue_id=99)]
    issues = [issue(1, version=(10, "v1.0")), issue(2)]
    rows = _aggregate(entries, issues).by_version

    assert [(row.version, row.hours, row.issue_count) for row in rows] == [
        ("(none)", 4.0, 2),
        ("v1.0", 2.0, 1),
    ]


def test_by_activity_percentages():
    entries = [
        time_entry(1, 1.0, activity=(1, "Design")),
        time_entry(2, 1.0, activity=(2, "Development")),
        time_entry(3, 1.0, activity=(3, "Testing")),
    ]
    rows = _aggregate(entries, []).by_activity

    assert [row.activity for row in rows] == ["Design", "Development", "Testing"]
    assert all(row.percentage == 33.33 for row in rows)
    assert sum(row.percentage for row in rows) <= 100.0


def test_custom_fields_grouping_and_omission():
    entries = [
        time_entry(1, 3.0, issue_id=1),
        time_entry(2, 1.0, issue_id=2),
        time_entry(3, 2.0, issue_id=3),
    ]
    issues = [
        issue(1, custom_fields={"Module": "Core", "Customers": ["ACME", "Globex"], "Empty": ""}),
        issue(2, custom_fields={"Module": "", "Customers": []}),
        issue(3, custom_fields={"Module": {"unexpected": "mapping"}}),
    ]
    tables = _aggregate(entries, issues).by_custom_field

    assert "Empty" not in tables
    assert [(row.value, row.hours) for row in tables["Module"]] == [("(none)", 3.0), ("Core", 3.0)]
    assert tables["Customers"][0].value == "(none)"
    assert [(row.value, row.percentage) for row in tables["Customers"]] == [("(none)", 50.0), ("ACME, Globex", 50.0)]


def test_custom_field_filter_keeps_requested_order():
    entries = [time_entry(1, 2.0, issue_id=1)]
    issues = [issue(1, custom_fields={"A": "x", "B": "y", "C": "z"})]
    tables = _aggregate(entries, issues, custom_fields=["C", "Missing", " A "]).by_custom_field

    assert list(tables) == ["C", "A"]


def test_custom_field_text_coercion():
    assert custom_field_text(None) == ""
    assert custom_field_text(" Core ") == "Core"
    assert custom_field_text(3) == "3"
    assert custom_field_text(["a", "", "b"]) == "a, b"
    assert custom_field_text({"id": 1}) is None


def test_monthly_trend_sorted_by_month_and_drops_bad_dates():
    entries = [
        time_entry(1, 2.0, issue_id=1, spent_on="2025-02-03"),
        time_entry(2, 1.5, issue_id=1, spent_on="2025-01-20"),
        time_entry(3, 4.0, spent_on="not-a-date"),
    ]
    rows = _aggregate(entries, [issue(1)]).monthly_trend

    assert [(row.month, row.hours, row.issue_count) for row in rows] == [("2025-01", 1.5, 1), ("2025-02", 2.0, 1)]


def test_top_issues_limited_sorted_and_balanced():
    entries = [time_entry(i, float(i % 7) + 0.25, issue_id=i) for i in range(1, 31)]
    entries.append(time_entry(100, 2.0))
    issues = [issue(i) for i in range(1, 31)]
    result = _aggregate(entries, issues)

    hours = [row.hours for row in result.top_issues]
    assert len(result.top_issues) == 20
    assert hours == sorted(hours, reverse=True)

    ranking = sorted(((e["hours"], e["issue"]["id"]) for e in entries if e.get("issue")), key=lambda p: (-p[0], p[1]))
    assert [row.id for row in result.top_issues] == [issue_id for _, issue_id in ranking[:20]]
    ranked_out = sum(h for h, _ in ranking[20:])
    assert ranked_out > 0
    assert result.unlinked_hours + sum(hours) + ranked_out == pytest.approx(result.summary.total_hours, abs=0.01)


def test_top_issues_ties_break_by_id_and_keep_missing_issues():
    entries = [time_entry(1, 2.0, issue_id=7), time_entry(2, 2.0, issue_id=3)]
    rows = _aggregate(entries, [issue(3, subject="Known")]).top_issues

    assert [row.id for row in rows] == [3, 7]
    assert rows[0].subject == "Known"
    assert rows[1].subject == ""


def test_tracker_sum_matches_total_of_fetched_linked_entries():
    entries = [time_entry(i, 0.333, issue_id=(i % 3) + 1) for i in range(1, 40)]
    issues = [issue(1, tracker="Bug"), issue(2, tracker="Feature"), issue(3, tracker="Support")]
    result = _aggregate(entries, issues)

    assert sum(row.hours for row in result.by_tracker) == pytest.approx(result.summary.total_hours, abs=0.01)
