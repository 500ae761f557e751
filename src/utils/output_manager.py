import os
from typing import Optional

from config import Config
from utils.file_manager import FileManager


class OutputManager:
    _output_dir = Config.OUTPUT_DIR

    @staticmethod
    def save_binary_report(
        content: bytes, sub_dir: str, file_name: str, output_path: Optional[str] = None
    ) -> str:
        """
        Saves an already encoded artifact (csv, xlsx, json bytes) as-is.

        Args:
            content (bytes): Encoded artifact.
            sub_dir (str): Subdirectory of OUTPUT_DIR, used when no output_path is given.
            file_name (str): File name including its extension.
            output_path (Optional[str]): Optional custom full path to save the file.

        Returns:
            str: The path where the file was saved.
        """
        path = output_path or os.path.join(OutputManager._output_dir, sub_dir, file_name)
        FileManager.write_bytes(path, content)
        return path
