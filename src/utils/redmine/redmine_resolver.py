from typing import Dict, List

from utils.logging.logging_manager import LogManager
from utils.redmine.error import RedmineResolveError
from utils.redmine.redmine_assistant import RedmineAssistant


class RedmineResolver:
    """
    Turns user supplied project and version references (id, name or identifier) into ids.
    """

    _logger = LogManager.get_instance().get_logger("RedmineResolver")

    def __init__(self, assistant: RedmineAssistant):
        self.assistant = assistant

    def resolve_project(self, reference: str) -> int:
        """
        Resolve a project reference.

        Args:
            reference (str): Numeric id, identifier or (partial) name.

        Returns:
            int: The project id.

        Raises:
            RedmineResolveError: When nothing or more than one project matches.
        """
        reference = str(reference).strip()
        if reference.isdigit():
            return int(reference)
        projects = self.assistant.list_projects()
        match = self._match(reference, projects, ("identifier", "name"), "project")
        self._logger.debug(f"Resolved project '{reference}' to {match['id']}")
        return int(match["id"])

    def resolve_version(self, project_id: int, reference: str) -> int:
        """
        Resolve a version reference inside a project.

        Raises:
            RedmineResolveError: When nothing or more than one version matches.
        """
        reference = str(reference).strip()
        if reference.isdigit():
            return int(reference)
        versions = self.assistant.list_versions(project_id)
        match = self._match(reference, versions, ("name",), "version")
        self._logger.debug(f"Resolved version '{reference}' to {match['id']}")
        return int(match["id"])

    @staticmethod
    def _match(reference: str, candidates: List[Dict], keys: tuple, kind: str) -> Dict:
        needle = reference.lower()

        exact = [c for c in candidates if any(str(c.get(k, "")).lower() == needle for k in keys)]
        if len(exact) == 1:
            return exact[0]

        partial = exact or [c for c in candidates if any(needle in str(c.get(k, "")).lower() for k in keys)]
        if len(partial) == 1:
            return partial[0]

        if not partial:
            raise RedmineResolveError(f"No {kind} found matching '{reference}'", reference=reference)

        options = ", ".join(f"{c.get('name')} (ID: {c.get('id')})" for c in partial)
        raise RedmineResolveError(
            f"Multiple {kind}s match '{reference}': {options}", reference=reference
        )
