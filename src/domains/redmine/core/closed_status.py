from typing import Iterable

from config import Config
from domains.redmine.core.models import Issue

STATUS_NAME = "status_name"
CLOSED_DATE = "closed_date"


class ClosedStatusClassifier:
    """
    Decides whether an issue counts as closed. One strategy per run:

    - ``status_name``: the status name is in the closed-equivalent table (case-insensitive)
    - ``closed_date``: the issue carries a closed-on timestamp
    """

    def __init__(self, strategy: str = STATUS_NAME, closed_statuses: Iterable[str] = ()):
        if strategy not in (STATUS_NAME, CLOSED_DATE):
            raise ValueError(f"Unknown closed-status strategy: {strategy}")
        self.strategy = strategy
        self.closed_statuses = frozenset(name.strip().casefold() for name in closed_statuses if name.strip())

    @classmethod
    def from_config(cls) -> "ClosedStatusClassifier":
        return cls(Config.REPORT_CLOSED_STRATEGY, Config.REPORT_CLOSED_STATUSES)

    def is_closed(self, issue: Issue) -> bool:
        if self.strategy == CLOSED_DATE:
            return bool(issue.closed_on)
        return issue.status.name.strip().casefold() in self.closed_statuses
