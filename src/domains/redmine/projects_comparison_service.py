"""
Redmine Projects Comparison Service

Runs the project analysis for several projects with the same filters and renders them side
by side (comparison workbook, JSON list, or CSV summary table).
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from domains.redmine.core.delivery_target import parse_delivery_target
from domains.redmine.core.error import DeliveryError, FilterResolutionError
from domains.redmine.core.models import AnalysisRequest, AnalysisResult, IssueStatusFilter, OutputFormat
from domains.redmine.project_analysis_service import ProjectAnalysisService, ReportArtifact
from utils.file_manager import FileManager
from utils.logging.logging_manager import LogManager


@dataclass
class ComparisonReport:
    results: List[AnalysisResult]
    artifact: ReportArtifact
    download_url: Optional[str] = None
    projects: List[str] = field(default_factory=list)


class ProjectsComparisonService:
    """Compare time and effort across projects."""

    def __init__(self, analysis_service: Optional[ProjectAnalysisService] = None):
        self.logger = LogManager.get_instance().get_logger("ProjectsComparisonService")
        self.analysis_service = analysis_service or ProjectAnalysisService()

    def compare(
        self,
        projects: Sequence[str],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        issue_status: IssueStatusFilter = IssueStatusFilter.ALL,
        output_format: OutputFormat = OutputFormat.EXCEL,
        attach_to: Optional[str] = None,
        target_project: Optional[str] = None,
    ) -> ComparisonReport:
        """
        Analyze every project and render the comparison.

        Args:
            projects: Project ids, identifiers or names (at least two).
            date_from, date_to: Inclusive period shared by every project.
            issue_status: Issue status filter shared by every project.
            output_format: Encoding of the comparison.
            attach_to: Optional delivery descriptor.
            target_project: Project receiving the delivery, defaults to the first compared project.

        Raises:
            FilterResolutionError: Fewer than two projects, or one of them does not resolve.
            InvalidDeliveryTargetError: ``attach_to`` is malformed.
            RenderError: Unsupported ``output_format`` or encoding failure.
            DeliveryError: Delivery failed; ``error.report`` holds the ComparisonReport.
        """
        references = [reference.strip() for reference in projects if reference and reference.strip()]
        if len(references) < 2:
            raise FilterResolutionError("At least two projects are required for a comparison", projects=references)

        target = parse_delivery_target(attach_to)
        output_format = self.analysis_service.renderer.resolve_format(output_format)

        results: List[AnalysisResult] = []
        refs = []
        for reference in references:
            project = self.analysis_service.resolve_project(reference)
            refs.append(project)
            request = AnalysisRequest(
                project=project,
                date_from=date_from,
                date_to=date_to,
                issue_status=issue_status,
                output_format=output_format,
            )
            results.append(self.analysis_service.analyze(request))

        content = self.analysis_service.renderer.render_comparison(results, output_format)
        filename = FileManager.generate_file_name(
            prefix="projects",
            label="comparison",
            extension=f".{output_format.extension}",
            now=self.analysis_service.clock(),
        )
        report = ComparisonReport(
            results=results,
            artifact=ReportArtifact(content=content, filename=filename, media_type=output_format.media_type),
            projects=[project.name for project in refs],
        )
        self.logger.info(f"Compared {len(results)} projects: {', '.join(report.projects)}")

        if target is not None:
            destination = (
                self.analysis_service.resolve_project(target_project) if target_project else refs[0]
            )
            try:
                report.download_url = self.analysis_service.router.deliver(target, destination.id, content, filename)
            except DeliveryError as e:
                e.report = report
                raise
        return report
