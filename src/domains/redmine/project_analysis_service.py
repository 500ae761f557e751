"""
Redmine Project Analysis Service

Runs a full fetch-and-reduce pass over one project's time entries and issues, renders the
result as JSON, CSV or Excel, and optionally attaches the artifact back into Redmine
(project files, an issue, a wiki page or DMSF).
"""

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import Config
from domains.redmine.core.closed_status import ClosedStatusClassifier
from domains.redmine.core.delivery_target import DeliveryTarget, parse_delivery_target
from domains.redmine.core.error import DeliveryError, FilterResolutionError
from domains.redmine.core.models import AnalysisRequest, AnalysisResult, OutputFormat, ProjectRef
from domains.redmine.services.analysis_aggregator import AnalysisAggregator
from domains.redmine.services.analysis_fetcher import AnalysisFetcher
from domains.redmine.services.delivery_router import DeliveryRouter
from domains.redmine.services.report_renderer import ReportRenderer
from utils.file_manager import FileManager
from utils.logging.logging_manager import LogManager
from utils.redmine.error import RedmineManagerError
from utils.redmine.redmine_assistant import RedmineAssistant
from utils.redmine.redmine_resolver import RedmineResolver


@dataclass
class ReportArtifact:
    """Rendered report bytes with the name and media type they should travel under."""

    content: bytes
    filename: str
    media_type: str

    def as_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")


@dataclass
class ProjectReport:
    result: AnalysisResult
    artifact: ReportArtifact

    @property
    def download_url(self) -> Optional[str]:
        return self.result.download_url


class ProjectAnalysisService:
    """Service orchestrating fetch, aggregation, rendering and delivery of a project analysis."""

    def __init__(
        self,
        assistant: Optional[RedmineAssistant] = None,
        classifier: Optional[ClosedStatusClassifier] = None,
        wiki_page: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.logger = LogManager.get_instance().get_logger("ProjectAnalysisService")
        self.assistant = assistant or RedmineAssistant()
        self.resolver = RedmineResolver(self.assistant)
        self.fetcher = AnalysisFetcher(self.assistant, self.resolver)
        self.renderer = ReportRenderer()
        self.router = DeliveryRouter(
            self.assistant, self.resolver, wiki_page=wiki_page or Config.REPORT_WIKI_PAGE, clock=clock
        )
        self.classifier = classifier or ClosedStatusClassifier.from_config()
        self.clock = clock

    def resolve_project(self, reference: str) -> ProjectRef:
        """
        Resolve a project id, identifier or name into a ProjectRef with display name and identifier.

        Raises:
            FilterResolutionError: The project does not exist or the reference is ambiguous.
        """
        try:
            project_id = self.resolver.resolve_project(reference)
            project = self.assistant.get_project(project_id)
        except RedmineManagerError as e:
            raise FilterResolutionError(
                f"Could not resolve project '{reference}'", project=reference, error=str(e)
            ) from e
        return ProjectRef(
            id=project_id,
            name=project.get("name") or str(reference),
            identifier=project.get("identifier") or str(project_id),
        )

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Fetch and aggregate. Filters are resolved before any record is fetched.

        Raises:
            FilterResolutionError: The version filter did not resolve.
            FetchError: A page request failed.
        """
        self.logger.info(f"Starting project analysis for {request.project.name or request.project.id}")
        data = self.fetcher.fetch(request)

        filters = {"issue_status": request.issue_status.value}
        if request.version:
            filters["version"] = request.version
        if request.custom_fields:
            filters["custom_fields"] = list(request.custom_fields)

        result = AnalysisResult(
            project={"id": request.project.id, "name": request.project.name},
            period=request.period,
            filters=filters,
        )
        aggregator = AnalysisAggregator(self.classifier, request.custom_fields)
        aggregator.aggregate(data.time_entries, data.issues, result)
        self.logger.info(
            f"Analysis complete: {result.summary.total_hours}h over {result.summary.total_issues} issues, "
            f"{result.unlinked_hours}h unlinked"
        )
        return result

    def render(self, result: AnalysisResult, output_format: OutputFormat, project: ProjectRef) -> ReportArtifact:
        """
        Encode the result. The file name is ``<identifier>_analysis_<YYYYMMDD>.<ext>``.

        Raises:
            RenderError: Encoding failed.
        """
        output_format = self.renderer.resolve_format(output_format)
        content = self.renderer.render(result, output_format)
        filename = FileManager.generate_file_name(
            prefix=project.file_prefix,
            label="analysis",
            extension=f".{output_format.extension}",
            now=self.clock(),
        )
        return ReportArtifact(content=content, filename=filename, media_type=output_format.media_type)

    def deliver(self, report: ProjectReport, target: DeliveryTarget, project_id: int) -> str:
        """
        Deliver an already built report and record its location on the result.

        Raises:
            DeliveryError: The upload failed. ``error.report`` holds the report.
        """
        try:
            location = self.router.deliver(target, project_id, report.artifact.content, report.artifact.filename)
        except DeliveryError as e:
            e.report = report
            raise
        report.result.download_url = location
        return location

    def generate_report(self, request: AnalysisRequest) -> ProjectReport:
        """
        Analyze, render and, when ``request.attach_to`` is set, deliver.

        Raises:
            InvalidDeliveryTargetError: ``attach_to`` is malformed. Raised before anything is fetched.
            DeliveryError: Delivery failed after the report was built; ``error.report`` holds it.
        """
        target = parse_delivery_target(request.attach_to)

        result = self.analyze(request)
        artifact = self.render(result, request.output_format, request.project)
        report = ProjectReport(result=result, artifact=artifact)

        if target is not None:
            self.deliver(report, target, request.project.id)
        return report
