from dataclasses import dataclass, field
from typing import List, Optional

from domains.redmine.core.error import FetchError, FilterResolutionError
from domains.redmine.core.models import AnalysisRequest, Issue, TimeEntry
from utils.logging.logging_manager import LogManager
from utils.redmine.error import RedmineManagerError
from utils.redmine.redmine_assistant import RedmineAssistant
from utils.redmine.redmine_resolver import RedmineResolver

PAGE_SIZE = 100


@dataclass
class FetchedData:
    time_entries: List[TimeEntry] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    version_id: Optional[int] = None


class AnalysisFetcher:
    """
    Retrieves every time entry and issue matching an analysis request, page by page.
    """

    def __init__(self, assistant: RedmineAssistant, resolver: Optional[RedmineResolver] = None):
        self.assistant = assistant
        self.resolver = resolver or RedmineResolver(assistant)
        self.logger = LogManager.get_instance().get_logger("AnalysisFetcher")

    def fetch(self, request: AnalysisRequest) -> FetchedData:
        """
        Resolve filters, then fetch all time entries and issues.

        Raises:
            FilterResolutionError: The version filter did not resolve. Nothing has been fetched.
            FetchError: A page request failed.
        """
        version_id = self.resolve_version(request)
        time_entries = self.fetch_time_entries(request)
        issues = self.fetch_issues(request, version_id)
        self.logger.info(
            f"Fetched {len(time_entries)} time entries and {len(issues)} issues for project {request.project.id}"
        )
        return FetchedData(time_entries=time_entries, issues=issues, version_id=version_id)

    def resolve_version(self, request: AnalysisRequest) -> Optional[int]:
        if not request.version:
            return None
        try:
            return self.resolver.resolve_version(request.project.id, request.version)
        except RedmineManagerError as e:
            raise FilterResolutionError(
                f"Could not resolve version '{request.version}'",
                project_id=request.project.id,
                version=request.version,
                error=str(e),
            ) from e

    def fetch_time_entries(self, request: AnalysisRequest) -> List[TimeEntry]:
        """Requests pages until one comes back short or the reported total is reached."""
        entries: List[TimeEntry] = []
        offset = 0
        date_from = request.date_from.isoformat() if request.date_from else None
        date_to = request.date_to.isoformat() if request.date_to else None

        while True:
            try:
                page, total_count = self.assistant.list_time_entries(
                    request.project.id, date_from, date_to, limit=PAGE_SIZE, offset=offset
                )
                entries.extend(TimeEntry.from_api(item) for item in page)
            except (RedmineManagerError, KeyError, ValueError) as e:
                raise FetchError(
                    "Failed to fetch time entries", project_id=request.project.id, offset=offset, error=str(e)
                ) from e

            offset += len(page)
            self.logger.debug(f"Time entries page: {len(page)} records, {offset}/{total_count}")
            if len(page) < PAGE_SIZE or (total_count and offset >= total_count):
                break

        return entries

    def fetch_issues(self, request: AnalysisRequest, version_id: Optional[int] = None) -> List[Issue]:
        """Requests pages until the running count reaches ``total_count`` or a page is empty."""
        issues: List[Issue] = []
        offset = 0

        while True:
            try:
                page, total_count = self.assistant.search_issues(
                    request.project.id,
                    status_id=request.issue_status.api_value,
                    fixed_version_id=version_id,
                    limit=PAGE_SIZE,
                    offset=offset,
                )
                issues.extend(Issue.from_api(item) for item in page)
            except (RedmineManagerError, KeyError, ValueError) as e:
                raise FetchError(
                    "Failed to fetch issues", project_id=request.project.id, offset=offset, error=str(e)
                ) from e

            offset += len(page)
            self.logger.debug(f"Issues page: {len(page)} records, {offset}/{total_count}")
            if not page or offset >= total_count:
                break

        return issues
