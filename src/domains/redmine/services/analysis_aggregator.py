"""
Reduces fetched time entries and issues into the statistical views of a project analysis.

All sums are kept unrounded; values are rounded once (half up, two decimals) when the
result rows are built.
"""

from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from domains.redmine.core.closed_status import ClosedStatusClassifier
from domains.redmine.core.models import (
    ActivityRow,
    AnalysisResult,
    CustomFieldRow,
    Issue,
    MonthRow,
    Summary,
    TimeEntry,
    TopIssueRow,
    TrackerRow,
    UserRow,
    VersionRow,
)

NONE_VALUE = "(none)"
TOP_ISSUES_LIMIT = 20
HOURS_PER_DAY = 8.0


def round_float(value: float, places: int = 2) -> float:
    """Round half up, so ``round_float(2.345, 2) == 2.35`` (the builtin gives 2.34)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _ranked(hours: Dict[Any, float]) -> List[Tuple[Any, float]]:
    """Descending by hours, ties broken by ascending key."""
    return sorted(hours.items(), key=lambda item: (-item[1], item[0]))


def custom_field_text(value: Any) -> Optional[str]:
    """
    Coerce a raw custom field value to text. Lists are comma-joined, None and blanks give "",
    unsupported types (mappings, objects) give None and are treated as absent.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        items = [custom_field_text(item) for item in value if not isinstance(item, (list, tuple, dict))]
        return ", ".join(item for item in items if item)
    return None


class AnalysisAggregator:
    """
    Pure reduction of (time entries, issues) into summary, grouped tables, trend and top issues.
    """

    def __init__(self, classifier: ClosedStatusClassifier, custom_fields: Sequence[str] = ()):
        self.classifier = classifier
        self.custom_fields = [name.strip() for name in custom_fields if name and name.strip()]

    def aggregate(self, entries: Sequence[TimeEntry], issues: Sequence[Issue], result: AnalysisResult) -> AnalysisResult:
        """
        Fill every statistical view of ``result`` and return it.
        """
        issue_map = {issue.id: issue for issue in issues}

        result.summary = self.summary(entries, issues)
        result.by_tracker = self.by_tracker(entries, issue_map)
        result.by_user = self.by_user(entries)
        result.by_activity = self.by_activity(entries)
        result.by_version = self.by_version(entries, issue_map)
        result.by_custom_field = self.by_custom_field(entries, issues, issue_map)
        result.monthly_trend = self.monthly_trend(entries)
        result.top_issues, result.unlinked_hours = self.top_issues(entries, issue_map)
        return result

    def summary(self, entries: Sequence[TimeEntry], issues: Sequence[Issue]) -> Summary:
        total_hours = sum(entry.hours for entry in entries)
        contributors = {entry.user.id for entry in entries if entry.user.id is not None}
        closed = sum(1 for issue in issues if self.classifier.is_closed(issue))

        return Summary(
            total_hours=round_float(total_hours),
            total_issues=len(issues),
            closed_issues=closed,
            open_issues=len(issues) - closed,
            contributors=len(contributors),
            avg_hours_per_person=round_float(_ratio(total_hours, len(contributors))),
            person_days=round_float(total_hours / HOURS_PER_DAY),
        )

    @staticmethod
    def _group(pairs: Iterable[Tuple[str, TimeEntry]]) -> Tuple[Dict[str, float], Dict[str, Set[int]]]:
        hours: Dict[str, float] = defaultdict(float)
        issue_ids: Dict[str, Set[int]] = defaultdict(set)
        for key, entry in pairs:
            hours[key] += entry.hours
            if entry.issue_id is not None:
                issue_ids[key].add(entry.issue_id)
        return hours, issue_ids

    def by_tracker(self, entries: Sequence[TimeEntry], issue_map: Dict[int, Issue]) -> List[TrackerRow]:
        hours, issue_ids = self._group(
            (issue_map[entry.issue_id].tracker.name, entry)
            for entry in entries
            if entry.issue_id in issue_map
        )
        return [
            TrackerRow(
                tracker=tracker,
                hours=round_float(value),
                issue_count=len(issue_ids[tracker]),
                avg_hours=round_float(_ratio(value, len(issue_ids[tracker]))),
            )
            for tracker, value in _ranked(hours)
        ]

    def by_user(self, entries: Sequence[TimeEntry]) -> List[UserRow]:
        hours, issue_ids = self._group((entry.user.name, entry) for entry in entries)
        return [
            UserRow(
                user=user,
                hours=round_float(value),
                issue_count=len(issue_ids[user]),
                avg_hours=round_float(_ratio(value, len(issue_ids[user]))),
            )
            for user, value in _ranked(hours)
        ]

    def by_activity(self, entries: Sequence[TimeEntry]) -> List[ActivityRow]:
        total_hours = sum(entry.hours for entry in entries)
        hours, _ = self._group((entry.activity.name, entry) for entry in entries)
        return [
            ActivityRow(
                activity=activity,
                hours=round_float(value),
                percentage=round_float(_ratio(value, total_hours) * 100),
            )
            for activity, value in _ranked(hours)
        ]

    def by_version(self, entries: Sequence[TimeEntry], issue_map: Dict[int, Issue]) -> List[VersionRow]:
        def version_of(entry: TimeEntry) -> str:
            issue = issue_map.get(entry.issue_id)
            if issue is None or issue.fixed_version is None or not issue.fixed_version.name:
                return NONE_VALUE
            return issue.fixed_version.name

        hours, issue_ids = self._group((version_of(entry), entry) for entry in entries if entry.is_linked)
        return [
            VersionRow(
                version=version,
                hours=round_float(value),
                issue_count=len(issue_ids[version]),
                avg_hours=round_float(_ratio(value, len(issue_ids[version]))),
            )
            for version, value in _ranked(hours)
        ]

    def _custom_field_values(self, issues: Sequence[Issue]) -> Tuple[Dict[int, Dict[str, str]], List[str]]:
        """Per issue the non-empty text value of each field, plus field names in order of first sighting."""
        values: Dict[int, Dict[str, str]] = {}
        observed: List[str] = []
        for issue in issues:
            issue_values = values.setdefault(issue.id, {})
            for field in issue.custom_fields:
                text = custom_field_text(field.value)
                if not text:
                    continue
                issue_values[field.name] = text
                if field.name not in observed:
                    observed.append(field.name)
        return values, observed

    def by_custom_field(
        self,
        entries: Sequence[TimeEntry],
        issues: Sequence[Issue],
        issue_map: Dict[int, Issue],
    ) -> Dict[str, List[CustomFieldRow]]:
        issue_values, observed = self._custom_field_values(issues)
        candidates = self.custom_fields or observed

        tables: Dict[str, List[CustomFieldRow]] = {}
        for field_name in candidates:
            if field_name not in observed:
                continue

            hours, issue_ids = self._group(
                (issue_values[entry.issue_id].get(field_name, NONE_VALUE), entry)
                for entry in entries
                if entry.issue_id in issue_map
            )
            field_total = sum(hours.values())
            rows = [
                CustomFieldRow(
                    value=value,
                    hours=round_float(value_hours),
                    issue_count=len(issue_ids[value]),
                    avg_hours=round_float(_ratio(value_hours, len(issue_ids[value]))),
                    percentage=round_float(_ratio(value_hours, field_total) * 100),
                )
                for value, value_hours in _ranked(hours)
            ]
            if rows:
                tables[field_name] = rows
        return tables

    def monthly_trend(self, entries: Sequence[TimeEntry]) -> List[MonthRow]:
        def month_of(entry: TimeEntry) -> Optional[str]:
            try:
                return datetime.strptime(entry.spent_on, "%Y-%m-%d").strftime("%Y-%m")
            except ValueError:
                return None

        by_month = ((month_of(entry), entry) for entry in entries)
        hours, issue_ids = self._group(pair for pair in by_month if pair[0] is not None)
        return [
            MonthRow(
                month=month,
                hours=round_float(hours[month]),
                issue_count=len(issue_ids[month]),
                avg_hours=round_float(_ratio(hours[month], len(issue_ids[month]))),
            )
            for month in sorted(hours)
        ]

    def top_issues(self, entries: Sequence[TimeEntry], issue_map: Dict[int, Issue]) -> Tuple[List[TopIssueRow], float]:
        """Top issues by hours and the hours of unlinked entries."""
        issue_hours: Dict[int, float] = defaultdict(float)
        unlinked_hours = 0.0
        for entry in entries:
            if entry.issue_id is None:
                unlinked_hours += entry.hours
            else:
                issue_hours[entry.issue_id] += entry.hours

        rows = []
        for issue_id, hours in _ranked(issue_hours)[:TOP_ISSUES_LIMIT]:
            issue = issue_map.get(issue_id)
            rows.append(
                TopIssueRow(
                    id=issue_id,
                    subject=issue.subject if issue else "",
                    tracker=issue.tracker.name if issue else "",
                    status=issue.status.name if issue else "",
                    hours=round_float(hours),
                )
            )
        return rows, round_float(unlinked_hours)
