import logging
import os
from enum import Enum
from logging import Logger
from logging.handlers import TimedRotatingFileHandler
from typing import Dict, Optional

from utils.file_manager import FileManager

LOG_OUTPUTS = ("console", "file", "both")
LINE_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(Enum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_name(cls, name: Optional[str], default: "LogLevel" = None) -> "LogLevel":
        """Maps a level name such as "warning" to a LogLevel, falling back to INFO."""
        try:
            return cls[(name or "").strip().upper()]
        except KeyError:
            return default or cls.INFO


class LevelFilter(logging.Filter):
    """Lets through records of exactly one level."""

    def __init__(self, level: LogLevel):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == self.level.value


class ColorFormatter(logging.Formatter):
    """Console formatter: colored level tag, and one name color per logger."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[94m",
        logging.INFO: "\033[92m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[91m\033[1m",
    }
    NAME_COLORS = ["\033[95m", "\033[96m", "\033[36m", "\033[35m", "\033[34m", "\033[33m", "\033[90m"]
    RESET = "\033[0m"

    def __init__(self, logger_number: int):
        super().__init__()
        name_color = self.NAME_COLORS[logger_number % len(self.NAME_COLORS)]
        self.formatters = {
            level: logging.Formatter(
                f"[%(asctime)s]{color}[%(levelname)s]{self.RESET}{name_color}[%(name)s]{self.RESET}: %(message)s",
                datefmt=DATE_FORMAT,
            )
            for level, color in self.LEVEL_COLORS.items()
        }
        self.fallback = logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        return self.formatters.get(record.levelno, self.fallback).format(record)


class LogManager:
    """
    Process-wide registry of named loggers.

    Every class asks for its logger by name (``get_logger("AnalysisFetcher")``); handlers are
    attached once per name, writing to the console, to an hourly rotated file, or both.
    """

    _instance = None

    @staticmethod
    def initialize(
        log_dir: str,
        log_file: str,
        log_retention_hours: int,
        default_level: LogLevel = LogLevel.INFO,
        use_filter: bool = False,
        log_output: str = "both",
    ):
        if LogManager._instance is None:
            LogManager(log_dir, log_file, log_retention_hours, default_level, use_filter, log_output)

    @staticmethod
    def get_instance() -> "LogManager":
        if LogManager._instance is None:
            raise RuntimeError("LogManager is not initialized. Call `LogManager.initialize()` first.")
        return LogManager._instance

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(LogManager, cls).__new__(cls)
        return cls._instance

    def __init__(
        self,
        log_dir: str,
        log_file: str,
        log_retention_hours: int,
        default_level: LogLevel = LogLevel.INFO,
        use_filter: bool = False,
        log_output: str = "both",
    ):
        """
        Args:
            log_dir (str): Folder for the log file; created when file output is enabled.
            log_file (str): Log file name.
            log_retention_hours (int): Hourly rotated files kept on disk.
            default_level (LogLevel): Level applied to every logger.
            use_filter (bool): Keep only records of exactly ``default_level``.
            log_output (str): "console", "file" or "both".

        Raises:
            TypeError: If a path or the retention is of the wrong type.
            ValueError: If log_output is not one of LOG_OUTPUTS.
        """
        if getattr(self, "_initialized", False):
            return

        if not isinstance(log_dir, str) or not isinstance(log_file, str):
            raise TypeError("log_dir and log_file must be strings")
        if not isinstance(log_retention_hours, int):
            raise TypeError("log_retention_hours must be an integer")
        if log_output not in LOG_OUTPUTS:
            raise ValueError(f"Unsupported log_output: {log_output}")

        self.main_name = "__main__"
        self.log_path = os.path.join(log_dir, log_file)
        self.log_retention_hours = log_retention_hours
        self.default_level = default_level
        self.use_filter = use_filter
        self.log_output = log_output
        self.loggers: Dict[str, Logger] = {}

        if log_output != "console":
            FileManager.create_folder(log_dir)
        self._register(self.main_name)
        self._initialized = True

    def _handlers(self, color_index: int):
        if self.log_output != "file":
            console = logging.StreamHandler()
            console.setFormatter(ColorFormatter(color_index))
            yield console
        if self.log_output != "console":
            rotating = TimedRotatingFileHandler(
                self.log_path, when="h", interval=1, backupCount=self.log_retention_hours, encoding="utf-8"
            )
            rotating.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT))
            yield rotating

    def _register(self, name: str) -> Logger:
        logger = logging.getLogger(name)
        logger.propagate = False
        logger.setLevel(self.default_level.value)

        if not logger.hasHandlers():
            for handler in self._handlers(len(self.loggers)):
                if self.use_filter:
                    handler.addFilter(LevelFilter(self.default_level))
                logger.addHandler(handler)

        self.loggers[name] = logger
        return logger

    def get_logger(self, name: Optional[str] = None) -> Logger:
        """Returns the logger registered under ``name`` (the main logger when blank), creating it on first use."""
        logger_name = name.strip() if isinstance(name, str) and name.strip() else self.main_name
        return self.loggers.get(logger_name) or self._register(logger_name)
