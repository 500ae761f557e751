from datetime import datetime
from pathlib import Path

from utils.command.command_manager import CommandManager
from utils.file_manager import FileManager
from utils.logging.logging_manager import LogLevel
from utils.output_manager import OutputManager

DOMAINS = Path(__file__).resolve().parents[1] / "src" / "domains"


def _parser():
    manager = CommandManager(str(DOMAINS))
    manager.load_commands()
    return manager, manager.build_parser()


def test_redmine_commands_are_discovered():
    manager, _ = _parser()

    assert set(manager.hierarchy["redmine"]) == {"project-analysis", "projects-compare"}


def test_project_analysis_arguments():
    _, parser = _parser()

    args = parser.parse_args(
        [
            "redmine", "project-analysis", "--project", "alpha", "--from", "2025-01-01", "--to", "2025-01-31",
            "--issue-status", "closed", "--custom-fields", "Module,Team", "--format", "excel",
            "--attach-to", "wiki:Reports",
        ]
    )

    assert args.project == "alpha"
    assert (args.date_from, args.date_to) == ("2025-01-01", "2025-01-31")
    assert args.issue_status == "closed"
    assert args.output_format == "excel"
    assert args.attach_to == "wiki:Reports"
    assert callable(args.func)


def test_generate_file_name():
    name = FileManager.generate_file_name("my proj", "analysis", ".csv", now=datetime(2025, 3, 9))

    assert name == "my_proj_analysis_20250309.csv"


def test_save_binary_report(tmp_path):
    target = tmp_path / "nested" / "report.xlsx"

    path = OutputManager.save_binary_report(b"xlsx", "project-analysis", "ignored.xlsx", str(target))

    assert path == str(target)
    assert target.read_bytes() == b"xlsx"


def test_log_level_from_name():
    assert LogLevel.from_name("warning") is LogLevel.WARNING
    assert LogLevel.from_name("verbose") is LogLevel.INFO
    assert LogLevel.from_name(None) is LogLevel.INFO


def test_saving_over_a_report_keeps_a_backup(tmp_path):
    target = tmp_path / "report.csv"

    OutputManager.save_binary_report(b"first", "project-analysis", "report.csv", str(target))
    OutputManager.save_binary_report(b"second", "project-analysis", "report.csv", str(target))

    assert target.read_bytes() == b"second"
    assert (tmp_path / "report.csv.bak").read_bytes() == b"first"
