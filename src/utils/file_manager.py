import datetime
import os
from typing import Optional

from filelock import FileLock


class FileManager:
    """
    General file management operations used by the logging and output layers.
    """

    @staticmethod
    def create_folder(folder_path: str, exist_ok: bool = True) -> None:
        """
        Creates a folder.

        Args:
            folder_path (str): Path of the folder to create.
            exist_ok (bool): If True, suppresses errors if the folder exists.

        Raises:
            OSError: If the folder cannot be created.
        """
        os.makedirs(folder_path, exist_ok=exist_ok)

    @staticmethod
    def write_bytes(file_path: str, content: bytes) -> None:
        """
        Writes binary content under a file lock, creating the parent folder if needed.
        An existing file is kept as ``<file>.bak``.

        Args:
            file_path (str): Path to the file.
            content (bytes): The bytes to write.
        """
        FileManager.create_folder(os.path.dirname(file_path) or ".")
        with FileLock(f"{file_path}.lock"):
            if os.path.exists(file_path):
                os.replace(file_path, f"{file_path}.bak")
            with open(file_path, "wb") as file:
                file.write(content)

    @staticmethod
    def generate_file_name(
        prefix: Optional[str] = None,
        label: Optional[str] = None,
        extension: str = ".txt",
        include_timestamp: bool = True,
        timestamp_format: str = "%Y%m%d",
        now: Optional[datetime.datetime] = None,
    ) -> str:
        """
        Generates a standardized file name such as ``myproj_analysis_20250131.csv``.

        Args:
            prefix (Optional[str]): Leading identifier, usually a project identifier.
            label (Optional[str]): Kind of artifact (e.g. "analysis").
            extension (str): File extension including the dot.
            include_timestamp (bool): Whether to append a timestamp.
            timestamp_format (str): Format for the timestamp.
            now (Optional[datetime.datetime]): Reference time, defaults to the current time.

        Returns:
            str: The generated file name.
        """
        if not extension.startswith("."):
            raise ValueError("Extension must start with a dot.")
        now = now or datetime.datetime.now()
        parts = [
            prefix.replace(" ", "_") if prefix else None,
            label.replace(" ", "_") if label else None,
            now.strftime(timestamp_format) if include_timestamp else None,
        ]
        return "_".join(filter(None, parts)) + extension
