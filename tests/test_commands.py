import base64
from argparse import Namespace

import pytest

from domains.redmine import project_analysis_command, projects_compare_command
from domains.redmine.core.closed_status import ClosedStatusClassifier
from domains.redmine.project_analysis_command import ProjectAnalysisCommand
from domains.redmine.project_analysis_service import ProjectAnalysisService
from domains.redmine.projects_compare_command import ProjectsCompareCommand
from domains.redmine.projects_comparison_service import ProjectsComparisonService
from fakes import BASE_URL, issue, time_entry
from utils.output_manager import OutputManager


@pytest.fixture
def service(fake_assistant, clock, tmp_path, monkeypatch):
    fake_assistant.time_entries = [time_entry(1, 2.0, issue_id=1), time_entry(2, 1.0)]
    fake_assistant.issues = [issue(1, tracker="Bug")]
    analysis = ProjectAnalysisService(
        fake_assistant, ClosedStatusClassifier("status_name", ["Closed"]), wiki_page="Reports", clock=clock
    )
    monkeypatch.setattr(project_analysis_command, "ProjectAnalysisService", lambda: analysis)
    monkeypatch.setattr(projects_compare_command, "ProjectsComparisonService", lambda: ProjectsComparisonService(analysis))
    monkeypatch.setattr(OutputManager, "_output_dir", str(tmp_path))
    return analysis


def _analysis_args(**overrides):
    values = dict(
        project="alpha", date_from=None, date_to=None, issue_status="all", version=None, custom_fields=None,
        output_format="csv", attach_to=None, output_file=None, base64=False,
    )
    values.update(overrides)
    return Namespace(**values)


def _compare_args(**overrides):
    values = dict(
        projects="alpha,beta", date_from=None, date_to=None, issue_status="all", output_format="json",
        attach_to=None, target_project=None, output_file=None,
    )
    values.update(overrides)
    return Namespace(**values)


def test_analysis_saved_locally(service, tmp_path, capsys):
    ProjectAnalysisCommand.main(_analysis_args())

    saved = tmp_path / "project-analysis" / "alpha_analysis_20250131.csv"
    assert saved.read_bytes().startswith(b"=== Project Analysis Report ===")
    out = capsys.readouterr().out
    assert "Total Hours: 3.0" in out
    assert f"Report saved to: {saved}" in out


def test_analysis_printed_as_base64(service, tmp_path, capsys):
    ProjectAnalysisCommand.main(_analysis_args(output_format="json", base64=True))

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[-2] == "Filename: alpha_analysis_20250131.json"
    assert base64.b64decode(lines[-1]).startswith(b"{")
    assert not (tmp_path / "project-analysis").exists()


def test_analysis_attached_prints_location(service, capsys):
    ProjectAnalysisCommand.main(_analysis_args(attach_to="issue:42"))

    assert f"Report attached: {BASE_URL}/issues/42" in capsys.readouterr().out


def test_failed_delivery_keeps_report_locally(service, fake_assistant, tmp_path, capsys):
    fake_assistant.fail_on.add("create_or_update_wiki_page")
    kept = tmp_path / "kept.csv"

    with pytest.raises(SystemExit) as excinfo:
        ProjectAnalysisCommand.main(_analysis_args(attach_to="wiki", output_file=str(kept)))

    assert excinfo.value.code == 1
    assert kept.read_bytes().startswith(b"=== Project Analysis Report ===")
    assert f"report kept locally at {kept}" in capsys.readouterr().out


def test_invalid_period_exits(service, fake_assistant):
    with pytest.raises(SystemExit) as excinfo:
        ProjectAnalysisCommand.main(_analysis_args(date_from="2025-02-01", date_to="2025-01-01"))

    assert excinfo.value.code == 1
    assert fake_assistant.calls_to("list_time_entries") == []


def test_unknown_project_exits(service):
    with pytest.raises(SystemExit) as excinfo:
        ProjectAnalysisCommand.main(_analysis_args(project="gamma"))

    assert excinfo.value.code == 1


def test_comparison_saved_locally(service, tmp_path, capsys):
    ProjectsCompareCommand.main(_compare_args())

    saved = tmp_path / "projects-comparison" / "projects_comparison_20250131.json"
    assert saved.read_bytes().startswith(b"[")
    out = capsys.readouterr().out
    assert "Alpha: 3.0h" in out
    assert f"Comparison saved to: {saved}" in out


def test_comparison_failed_delivery_keeps_file(service, fake_assistant, tmp_path):
    fake_assistant.fail_on.add("dmsf_create_file")

    with pytest.raises(SystemExit):
        ProjectsCompareCommand.main(_compare_args(attach_to="dmsf"))

    assert (tmp_path / "projects-comparison" / "projects_comparison_20250131.json").exists()
