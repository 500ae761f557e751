"""
Redmine Projects Compare Command

Runs the project analysis for several projects with the same period and status filter and
renders them side by side.

USAGE EXAMPLES:

1. Excel comparison of two projects:
   python src/main.py redmine projects-compare --projects "alpha,beta"

2. Quarter comparison uploaded to a reporting project's wiki:
   python src/main.py redmine projects-compare --projects "12,15,21" --from 2025-01-01
   --to 2025-03-31 --attach-to wiki:Comparisons --target-project reporting
"""

import sys
from argparse import ArgumentParser, Namespace

from pydantic import ValidationError

from domains.redmine.core.error import DeliveryError, ProjectAnalysisError
from domains.redmine.core.models import AnalysisRequest
from domains.redmine.project_analysis_command import add_period_arguments
from domains.redmine.projects_comparison_service import ProjectsComparisonService
from utils.command.base_command import BaseCommand
from utils.logging.logging_manager import LogManager
from utils.output_manager import OutputManager

OUTPUT_SUB_DIR = "projects-comparison"


class ProjectsCompareCommand(BaseCommand):
    """Command to compare time and effort across Redmine projects."""

    @staticmethod
    def get_name() -> str:
        return "projects-compare"

    @staticmethod
    def get_description() -> str:
        return "Compare hours, issues and trends of several Redmine projects."

    @staticmethod
    def get_help() -> str:
        return "Side by side analysis of two or more projects."

    @staticmethod
    def get_arguments(parser: ArgumentParser):
        parser.add_argument(
            "--projects",
            type=str,
            required=True,
            help="Comma-separated project ids, identifiers or names (at least two).",
        )
        add_period_arguments(parser)
        parser.add_argument(
            "--format",
            dest="output_format",
            type=str,
            default="excel",
            help="Output format: excel, json or csv (default: excel).",
        )
        parser.add_argument(
            "--attach-to",
            type=str,
            help="Upload the comparison to Redmine: files[:version], issue:<id>, wiki[:title] or dmsf[:folder].",
        )
        parser.add_argument(
            "--target-project",
            type=str,
            help="Project receiving the upload (default: the first compared project).",
        )
        parser.add_argument(
            "--output-file",
            type=str,
            help="Path for the comparison when it is saved locally.",
        )

    @staticmethod
    def main(args: Namespace):
        logger = LogManager.get_instance().get_logger("ProjectsCompareCommand")

        try:
            # Validates period, status and format the same way a single analysis does
            template = AnalysisRequest(
                project={"id": 0},
                date_from=args.date_from,
                date_to=args.date_to,
                issue_status=args.issue_status,
                output_format=args.output_format,
            )
            report = ProjectsComparisonService().compare(
                projects=args.projects.split(","),
                date_from=template.date_from,
                date_to=template.date_to,
                issue_status=template.issue_status,
                output_format=template.output_format,
                attach_to=args.attach_to,
                target_project=args.target_project,
            )
        except ValidationError as e:
            logger.error(f"Invalid comparison parameters: {e}")
            print(f"Error: invalid comparison parameters:\n{e}")
            sys.exit(1)
        except DeliveryError as e:
            logger.error(f"Comparison delivery failed: {e}")
            if e.report is not None:
                path = OutputManager.save_binary_report(
                    e.report.artifact.content, OUTPUT_SUB_DIR, e.report.artifact.filename, args.output_file
                )
                print(f"Error: delivery failed, comparison kept locally at {path}")
            sys.exit(1)
        except ProjectAnalysisError as e:
            logger.error(f"Projects comparison failed: {e}")
            print(f"Error: {e}")
            sys.exit(1)

        print("\n" + "=" * 50)
        print("PROJECTS COMPARISON")
        print("=" * 50)
        for result in report.results:
            summary = result.summary
            print(
                f"{result.project.get('name')}: {summary.total_hours}h, "
                f"{summary.total_issues} issues, {summary.contributors} contributors"
            )
        print("=" * 50)

        if report.download_url:
            print(f"\nComparison attached: {report.download_url}")
        else:
            path = OutputManager.save_binary_report(
                report.artifact.content, OUTPUT_SUB_DIR, report.artifact.filename, args.output_file
            )
            print(f"\nComparison saved to: {path}")
        logger.info("Projects comparison completed successfully")
