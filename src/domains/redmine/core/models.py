"""
Data model for the Redmine project analysis: tracker records, the analysis request and
the aggregated result.

Tracker records (TimeEntry, Issue) are immutable snapshots built from API payloads.
Result rows carry hours already rounded to two decimals (round half up).
"""

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class IdName(BaseModel):
    """Reference to a named tracker object (user, tracker, status, activity, version)."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str = ""

    @classmethod
    def from_api(cls, data: Optional[Dict]) -> Optional["IdName"]:
        if not data:
            return None
        return cls(id=data.get("id"), name=data.get("name") or "")


class TimeEntry(BaseModel):
    """One logged block of work. Entries without an issue id are unlinked."""

    model_config = ConfigDict(frozen=True)

    id: int
    hours: float = Field(ge=0)
    user: IdName = Field(default_factory=IdName)
    activity: IdName = Field(default_factory=IdName)
    issue_id: Optional[int] = None
    spent_on: str = ""
    comments: str = ""

    @property
    def is_linked(self) -> bool:
        return self.issue_id is not None

    @classmethod
    def from_api(cls, data: Dict) -> "TimeEntry":
        issue = data.get("issue") or {}
        return cls(
            id=data["id"],
            hours=float(data.get("hours") or 0.0),
            user=IdName.from_api(data.get("user")) or IdName(),
            activity=IdName.from_api(data.get("activity")) or IdName(),
            issue_id=issue.get("id"),
            spent_on=data.get("spent_on") or "",
            comments=data.get("comments") or "",
        )


class CustomFieldValue(BaseModel):
    """Raw custom field value, either a scalar or a list for multi-value fields."""

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str
    value: Any = None
    multiple: bool = False

    @classmethod
    def from_api(cls, data: Dict) -> "CustomFieldValue":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            value=data.get("value"),
            multiple=bool(data.get("multiple", False)),
        )


class Issue(BaseModel):
    """Issue snapshot as returned by the issue listing."""

    model_config = ConfigDict(frozen=True)

    id: int
    subject: str = ""
    tracker: IdName = Field(default_factory=IdName)
    status: IdName = Field(default_factory=IdName)
    project: Optional[IdName] = None
    fixed_version: Optional[IdName] = None
    custom_fields: Tuple[CustomFieldValue, ...] = ()
    closed_on: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict) -> "Issue":
        return cls(
            id=data["id"],
            subject=data.get("subject") or "",
            tracker=IdName.from_api(data.get("tracker")) or IdName(),
            status=IdName.from_api(data.get("status")) or IdName(),
            project=IdName.from_api(data.get("project")),
            fixed_version=IdName.from_api(data.get("fixed_version")),
            custom_fields=tuple(CustomFieldValue.from_api(cf) for cf in data.get("custom_fields") or []),
            closed_on=data.get("closed_on") or None,
        )


class IssueStatusFilter(str, Enum):
    ALL = "all"
    OPEN = "open"
    CLOSED = "closed"

    @property
    def api_value(self) -> str:
        """Value of Redmine's ``status_id`` filter."""
        return "*" if self is IssueStatusFilter.ALL else self.value


class OutputFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    EXCEL = "excel"

    @property
    def extension(self) -> str:
        return {"json": "json", "csv": "csv", "excel": "xlsx"}[self.value]

    @property
    def media_type(self) -> str:
        return {
            "json": "application/json",
            "csv": "text/csv",
            "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        }[self.value]

    @classmethod
    def parse(cls, value) -> "OutputFormat":
        """Accepts a member, a name such as "excel" or an alias such as "spreadsheet"."""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        return cls(OUTPUT_FORMAT_ALIASES.get(name, name))


OUTPUT_FORMAT_ALIASES = {
    "structured": "json",
    "tabular-text": "csv",
    "spreadsheet": "excel",
    "xlsx": "excel",
}


class ProjectRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    identifier: str = ""

    @property
    def file_prefix(self) -> str:
        return self.identifier or str(self.id)


class AnalysisRequest(BaseModel):
    """Caller supplied parameters of one analysis run."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    project: ProjectRef
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    issue_status: IssueStatusFilter = IssueStatusFilter.ALL
    version: Optional[str] = None
    custom_fields: Tuple[str, ...] = ()
    output_format: OutputFormat = OutputFormat.JSON
    attach_to: Optional[str] = None

    @field_validator("output_format", mode="before")
    @classmethod
    def normalize_output_format(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return OUTPUT_FORMAT_ALIASES.get(value, value)
        return value

    @field_validator("issue_status", mode="before")
    @classmethod
    def normalize_issue_status(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return "all" if value in ("", "*") else value
        return value

    @field_validator("custom_fields", mode="before")
    @classmethod
    def normalize_custom_fields(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        names: List[str] = []
        for name in value:
            name = str(name).strip()
            if name and name not in names:
                names.append(name)
        return tuple(names)

    @field_validator("version", "attach_to", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def validate_period(self) -> "AnalysisRequest":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to.")
        return self

    @property
    def period(self) -> Optional[str]:
        """``from ~ to`` when any bound is given, either side may be empty."""
        if not self.date_from and not self.date_to:
            return None
        start = self.date_from.isoformat() if self.date_from else ""
        end = self.date_to.isoformat() if self.date_to else ""
        return f"{start} ~ {end}"


class Summary(BaseModel):
    total_hours: float = 0.0
    total_issues: int = 0
    closed_issues: int = 0
    open_issues: int = 0
    contributors: int = 0
    avg_hours_per_person: float = 0.0
    person_days: float = 0.0


class TrackerRow(BaseModel):
    tracker: str
    hours: float
    issue_count: int
    avg_hours: float


class UserRow(BaseModel):
    user: str
    hours: float
    issue_count: int
    avg_hours: float


class ActivityRow(BaseModel):
    activity: str
    hours: float
    percentage: float


class VersionRow(BaseModel):
    version: str
    hours: float
    issue_count: int
    avg_hours: float


class CustomFieldRow(BaseModel):
    value: str
    hours: float
    issue_count: int
    avg_hours: float
    percentage: float


class MonthRow(BaseModel):
    month: str
    hours: float
    issue_count: int
    avg_hours: float


class TopIssueRow(BaseModel):
    id: int
    subject: str = ""
    tracker: str = ""
    status: str = ""
    hours: float


class AnalysisResult(BaseModel):
    """Aggregated report of one project. Field order is the structured encoding's key order."""

    project: Dict[str, Any]
    period: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)
    summary: Summary = Field(default_factory=Summary)
    by_tracker: List[TrackerRow] = Field(default_factory=list)
    by_user: List[UserRow] = Field(default_factory=list)
    by_activity: List[ActivityRow] = Field(default_factory=list)
    by_version: List[VersionRow] = Field(default_factory=list)
    by_custom_field: Dict[str, List[CustomFieldRow]] = Field(default_factory=dict)
    monthly_trend: List[MonthRow] = Field(default_factory=list)
    top_issues: List[TopIssueRow] = Field(default_factory=list)
    unlinked_hours: float = 0.0
    download_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Nested mapping with optional keys (period, download_url) left out when unset."""
        data = self.model_dump()
        for key in ("period", "download_url"):
            if data.get(key) is None:
                data.pop(key, None)
        return data
