"""
Redmine Project Analysis Command

Analyzes the time logged on a Redmine project and produces a report with eight views:
summary, hours by tracker, user, activity, version and custom field, monthly trend and
the top 20 issues by hours.

USAGE EXAMPLES:

1. JSON report for a whole project:
   python src/main.py redmine project-analysis --project "my-project"

2. Excel report for a period, attached to the project's Files:
   python src/main.py redmine project-analysis --project 12 --from 2025-01-01 --to 2025-03-31
   --format excel --attach-to files

3. CSV report for one version, closed issues only, posted on an issue:
   python src/main.py redmine project-analysis --project "My Project" --version "v1.2"
   --issue-status closed --format csv --attach-to issue:345

4. Group hours by selected custom fields and print the artifact as base64:
   python src/main.py redmine project-analysis --project 12 --custom-fields "Module,Customer"
   --format excel --base64

ATTACH TARGETS:
- files / files:<version>   project Files list, optionally under a release
- issue:<id>                note with attachment on an issue
- wiki / wiki:<title>       link appended to a wiki page (default from REPORT_WIKI_PAGE)
- dmsf / dmsf:<folder_id>   DMSF document
"""

import sys
from argparse import ArgumentParser, Namespace

from pydantic import ValidationError

from domains.redmine.core.error import DeliveryError, ProjectAnalysisError
from domains.redmine.core.models import AnalysisRequest
from domains.redmine.project_analysis_service import ProjectAnalysisService, ProjectReport
from utils.command.base_command import BaseCommand
from utils.logging.logging_manager import LogManager
from utils.output_manager import OutputManager

OUTPUT_SUB_DIR = "project-analysis"


def add_period_arguments(parser: ArgumentParser):
    parser.add_argument("--from", dest="date_from", type=str, help="Start date, inclusive (YYYY-MM-DD).")
    parser.add_argument("--to", dest="date_to", type=str, help="End date, inclusive (YYYY-MM-DD).")
    parser.add_argument(
        "--issue-status",
        type=str,
        choices=["all", "open", "closed"],
        default="all",
        help="Issue status filter (default: all).",
    )


class ProjectAnalysisCommand(BaseCommand):
    """Command to analyze time and effort of a Redmine project."""

    @staticmethod
    def get_name() -> str:
        return "project-analysis"

    @staticmethod
    def get_description() -> str:
        return "Analyze time entries and issues of a Redmine project and render a report."

    @staticmethod
    def get_help() -> str:
        return "Project time/effort analysis with JSON, CSV or Excel output and optional upload to Redmine."

    @staticmethod
    def get_arguments(parser: ArgumentParser):
        parser.add_argument(
            "--project",
            type=str,
            required=True,
            help="Project id, identifier or name.",
        )
        add_period_arguments(parser)
        parser.add_argument(
            "--version",
            type=str,
            help="Restrict issues to one target version (name or id).",
        )
        parser.add_argument(
            "--custom-fields",
            type=str,
            help="Comma-separated custom field names to group by (default: every field with values).",
        )
        parser.add_argument(
            "--format",
            dest="output_format",
            type=str,
            default="json",
            help="Output format: json, csv or excel (default: json).",
        )
        parser.add_argument(
            "--attach-to",
            type=str,
            help="Upload the report to Redmine: files[:version], issue:<id>, wiki[:title] or dmsf[:folder].",
        )
        parser.add_argument(
            "--output-file",
            type=str,
            help="Path for the report when it is saved locally.",
        )
        parser.add_argument(
            "--base64",
            action="store_true",
            help="Print the report as base64 instead of saving it, when it is not attached.",
        )

    @staticmethod
    def main(args: Namespace):
        """
        Main function to execute the project analysis.

        Args:
            args (Namespace): Command-line arguments.
        """
        logger = LogManager.get_instance().get_logger("ProjectAnalysisCommand")

        try:
            service = ProjectAnalysisService()
            project = service.resolve_project(args.project)
            request = AnalysisRequest(
                project=project,
                date_from=args.date_from,
                date_to=args.date_to,
                issue_status=args.issue_status,
                version=args.version,
                custom_fields=args.custom_fields,
                output_format=args.output_format,
                attach_to=args.attach_to,
            )
            report = service.generate_report(request)
        except ValidationError as e:
            logger.error(f"Invalid analysis parameters: {e}")
            print(f"Error: invalid analysis parameters:\n{e}")
            sys.exit(1)
        except DeliveryError as e:
            logger.error(f"Report delivery failed: {e}")
            if e.report is not None:
                path = OutputManager.save_binary_report(
                    e.report.artifact.content, OUTPUT_SUB_DIR, e.report.artifact.filename, args.output_file
                )
                print(f"Error: delivery failed, report kept locally at {path}")
            sys.exit(1)
        except ProjectAnalysisError as e:
            logger.error(f"Project analysis failed: {e}")
            print(f"Error: {e}")
            sys.exit(1)

        ProjectAnalysisCommand.print_summary(report)

        if report.download_url:
            print(f"\nReport attached: {report.download_url}")
        elif args.base64:
            print(f"\nFilename: {report.artifact.filename}")
            print(report.artifact.as_base64())
        else:
            path = OutputManager.save_binary_report(
                report.artifact.content, OUTPUT_SUB_DIR, report.artifact.filename, args.output_file
            )
            print(f"\nReport saved to: {path}")
        logger.info("Project analysis completed successfully")

    @staticmethod
    def print_summary(report: ProjectReport):
        result = report.result
        summary = result.summary

        print("\n" + "=" * 50)
        print("PROJECT ANALYSIS SUMMARY")
        print("=" * 50)
        print(f"Project: {result.project.get('name')}")
        if result.period:
            print(f"Period: {result.period}")
        print(f"Total Hours: {summary.total_hours} ({summary.person_days} person days)")
        print(f"Issues: {summary.total_issues} ({summary.closed_issues} closed, {summary.open_issues} open)")
        print(f"Contributors: {summary.contributors} (avg {summary.avg_hours_per_person}h)")
        if result.unlinked_hours:
            print(f"Unlinked Hours: {result.unlinked_hours}")

        if result.by_tracker:
            print("\nHours by Tracker:")
            for row in result.by_tracker:
                print(f"  {row.tracker}: {row.hours}h ({row.issue_count} issues)")
        if result.top_issues:
            print("\nTop Issues:")
            for row in result.top_issues[:5]:
                print(f"  #{row.id} {row.subject}: {row.hours}h")
        print("=" * 50)
