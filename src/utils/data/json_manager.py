import json
from typing import Any


class JSONManager:
    """JSON encoding shared by the report renderers."""

    @staticmethod
    def dumps(data: Any) -> str:
        """
        Serializes data to an indented JSON string, keeping non-ASCII text readable.

        Args:
            data (Any): JSON-compatible data.

        Returns:
            str: The JSON document.
        """
        return json.dumps(data, indent=2, ensure_ascii=False)
