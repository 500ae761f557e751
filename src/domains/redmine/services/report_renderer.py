"""
Encodes an AnalysisResult as structured JSON, sectioned CSV or an xlsx workbook.

CSV layout (one section per block, blank line between sections):

    === Project Analysis Report ===
    Project,<name>
    Period,<from ~ to>            (only when a period is set)

    === Summary ===
    Metric,Value                  total_hours, person_days, total_issues, closed_issues,
                                  open_issues, contributors, avg_hours_per_person, unlinked_hours
    === By Tracker ===
    Tracker,Hours,Issue Count,Avg Hours
    === By User ===
    User,Hours,Issue Count,Avg Hours
    === Monthly Trend ===
    Month,Hours,Issue Count,Avg Hours
"""

import csv
from io import StringIO
from typing import Any, Dict, List, Sequence

import pandas as pd

from domains.redmine.core.error import RenderError
from domains.redmine.core.models import AnalysisResult, OutputFormat
from utils.data.excel_manager import ExcelManager, SheetBlock
from utils.data.json_manager import JSONManager
from utils.logging.logging_manager import LogManager

SUMMARY_LABELS = [
    ("total_hours", "Total Hours"),
    ("person_days", "Person Days"),
    ("total_issues", "Total Issues"),
    ("closed_issues", "Closed Issues"),
    ("open_issues", "Open Issues"),
    ("contributors", "Contributors"),
    ("avg_hours_per_person", "Avg Hours/Person"),
]

TRACKER_COLUMNS = {"tracker": "Tracker", "hours": "Hours", "issue_count": "Issue Count", "avg_hours": "Avg Hours"}
USER_COLUMNS = {"user": "User", "hours": "Hours", "issue_count": "Issue Count", "avg_hours": "Avg Hours"}
VERSION_COLUMNS = {"version": "Version", "hours": "Hours", "issue_count": "Issue Count", "avg_hours": "Avg Hours"}
MONTH_COLUMNS = {"month": "Month", "hours": "Hours", "issue_count": "Issue Count", "avg_hours": "Avg Hours"}
CUSTOM_FIELD_COLUMNS = {
    "value": "Value",
    "hours": "Hours",
    "issue_count": "Issue Count",
    "avg_hours": "Avg Hours",
    "percentage": "Percentage",
}
TOP_ISSUE_COLUMNS = {"id": "ID", "subject": "Subject", "tracker": "Tracker", "status": "Status", "hours": "Hours"}
COMPARISON_COLUMNS = ["Project", "Total Hours", "Person Days", "Total Issues", "Closed Issues", "Contributors",
                      "Avg Hours/Person"]


def _frame(rows: Sequence[Dict[str, Any]], columns: Dict[str, str]) -> pd.DataFrame:
    """Table with the given column order and display headers, header-only when rows is empty."""
    frame = pd.DataFrame([{key: row.get(key) for key in columns} for row in rows], columns=list(columns))
    return frame.rename(columns=columns)


class ReportRenderer:
    """
    Renders analysis results. Any encoding failure surfaces as RenderError with no partial output.
    """

    def __init__(self):
        self.logger = LogManager.get_instance().get_logger("ReportRenderer")

    @staticmethod
    def resolve_format(output_format) -> OutputFormat:
        try:
            return OutputFormat.parse(output_format)
        except ValueError as e:
            raise RenderError("Unsupported output format", output_format=str(output_format)) from e

    def render(self, result: AnalysisResult, output_format: OutputFormat) -> bytes:
        output_format = self.resolve_format(output_format)
        renderers = {
            OutputFormat.JSON: self.render_json,
            OutputFormat.CSV: self.render_csv,
            OutputFormat.EXCEL: self.render_excel,
        }
        try:
            content = renderers[output_format](result)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(
                "Failed to render report", output_format=output_format.value, error=str(e)
            ) from e
        self.logger.debug(f"Rendered {output_format.value} report ({len(content)} bytes)")
        return content

    def render_json(self, result: AnalysisResult) -> bytes:
        return JSONManager.dumps(result.to_dict()).encode("utf-8")

    def render_csv(self, result: AnalysisResult) -> bytes:
        data = result.to_dict()
        buffer = StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        writer.writerow(["=== Project Analysis Report ==="])
        writer.writerow(["Project", data["project"].get("name", "")])
        if data.get("period"):
            writer.writerow(["Period", data["period"]])
        writer.writerow([])

        writer.writerow(["=== Summary ==="])
        writer.writerow(["Metric", "Value"])
        for key, _ in SUMMARY_LABELS:
            writer.writerow([key, data["summary"][key]])
        writer.writerow(["unlinked_hours", data["unlinked_hours"]])

        for title, rows, columns in (
            ("By Tracker", data["by_tracker"], TRACKER_COLUMNS),
            ("By User", data["by_user"], USER_COLUMNS),
            ("Monthly Trend", data["monthly_trend"], MONTH_COLUMNS),
        ):
            writer.writerow([])
            writer.writerow([f"=== {title} ==="])
            writer.writerow(list(columns.values()))
            for row in rows:
                writer.writerow([row[key] for key in columns])

        return buffer.getvalue().encode("utf-8")

    def render_excel(self, result: AnalysisResult) -> bytes:
        data = result.to_dict()

        summary_rows = [{"Metric": label, "Value": data["summary"][key]} for key, label in SUMMARY_LABELS]
        if data["unlinked_hours"] > 0:
            summary_rows.append({"Metric": "Unlinked Hours", "Value": data["unlinked_hours"]})
        summary_titles = [
            "Project Analysis Report",
            f"Project: {data['project'].get('name', '')}",
            f"Period: {data['period']}" if data.get("period") else None,
            None,
        ]

        custom_field_blocks: List[SheetBlock] = []
        for field_name, rows in data["by_custom_field"].items():
            formatted = [{**row, "percentage": f"{row['percentage']:.1f}%"} for row in rows]
            custom_field_blocks.append(([field_name], _frame(formatted, CUSTOM_FIELD_COLUMNS)))

        return ExcelManager.workbook_bytes(
            {
                "Summary": [(summary_titles, pd.DataFrame(summary_rows, columns=["Metric", "Value"]))],
                "By Tracker": [([], _frame(data["by_tracker"], TRACKER_COLUMNS))],
                "By User": [([], _frame(data["by_user"], USER_COLUMNS))],
                "By Version": [([], _frame(data["by_version"], VERSION_COLUMNS))],
                "By Custom Field": custom_field_blocks,
                "Monthly Trend": [([], _frame(data["monthly_trend"], MONTH_COLUMNS))],
                "Top Issues": [([], _frame(data["top_issues"], TOP_ISSUE_COLUMNS))],
            }
        )

    def render_comparison(self, results: Sequence[AnalysisResult], output_format: OutputFormat) -> bytes:
        """
        Renders several project results side by side: a workbook with ``Summary Comparison``,
        ``By Tracker`` and ``Monthly Trend`` sheets, a JSON list, or the summary table as CSV.
        """
        output_format = self.resolve_format(output_format)
        try:
            if output_format is OutputFormat.JSON:
                return JSONManager.dumps([result.to_dict() for result in results]).encode("utf-8")

            summary = pd.DataFrame(
                [
                    [result.project.get("name", "")]
                    + [getattr(result.summary, key) for key in
                       ("total_hours", "person_days", "total_issues", "closed_issues", "contributors",
                        "avg_hours_per_person")]
                    for result in results
                ],
                columns=COMPARISON_COLUMNS,
            )
            if output_format is OutputFormat.CSV:
                return summary.to_csv(index=False, lineterminator="\n").encode("utf-8")

            tracker_blocks: List[SheetBlock] = []
            trend_blocks: List[SheetBlock] = []
            for result in results:
                data = result.to_dict()
                name = data["project"].get("name", "")
                tracker_blocks.append(([name], _frame(data["by_tracker"], TRACKER_COLUMNS)))
                trend_blocks.append(([name], _frame(data["monthly_trend"], MONTH_COLUMNS)))

            return ExcelManager.workbook_bytes(
                {
                    "Summary Comparison": [([], summary)],
                    "By Tracker": tracker_blocks,
                    "Monthly Trend": trend_blocks,
                }
            )
        except Exception as e:
            raise RenderError(
                "Failed to render comparison report", output_format=output_format.value, error=str(e)
            ) from e
