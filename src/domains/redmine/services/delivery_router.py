from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

from domains.redmine.core.delivery_target import (
    DeliveryTarget,
    DmsfTarget,
    FilesTarget,
    IssueTarget,
    WikiTarget,
)
from domains.redmine.core.error import DeliveryError, InvalidDeliveryTargetError
from utils.logging.logging_manager import LogManager
from utils.redmine.error import RedmineManagerError
from utils.redmine.redmine_assistant import RedmineAssistant
from utils.redmine.redmine_resolver import RedmineResolver

DEFAULT_WIKI_PAGE = "Reports"


class DeliveryRouter:
    """
    Uploads a rendered report into Redmine. files, issue and wiki targets use the upload token
    flow; dmsf stores the document through the DMSF plugin in one call.
    Every method returns the absolute location of the delivered report.
    """

    def __init__(
        self,
        assistant: RedmineAssistant,
        resolver: Optional[RedmineResolver] = None,
        wiki_page: str = DEFAULT_WIKI_PAGE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.assistant = assistant
        self.resolver = resolver or RedmineResolver(assistant)
        self.wiki_page = wiki_page or DEFAULT_WIKI_PAGE
        self.clock = clock
        self.logger = LogManager.get_instance().get_logger("DeliveryRouter")

    def deliver(self, target: DeliveryTarget, project_id: int, content: bytes, filename: str) -> str:
        """
        Deliver ``content`` as ``filename`` to ``target`` inside project ``project_id``.

        Raises:
            DeliveryError: Upload or commit failed.
            InvalidDeliveryTargetError: ``target`` is not a known target type.
        """
        handlers = {
            FilesTarget: self.deliver_to_files,
            IssueTarget: self.deliver_to_issue,
            WikiTarget: self.deliver_to_wiki,
            DmsfTarget: self.deliver_to_dmsf,
        }
        handler = handlers.get(type(target))
        if handler is None:
            raise InvalidDeliveryTargetError(f"Unsupported delivery target: {target!r}")

        self.logger.info(f"Delivering '{filename}' to {target.describe()} in project {project_id}")
        try:
            location = handler(target, project_id, content, filename)
        except RedmineManagerError as e:
            raise DeliveryError(
                f"Failed to deliver report to {target.describe()}",
                target=target.describe(),
                project_id=project_id,
                filename=filename,
                error=str(e),
            ) from e
        self.logger.info(f"Report delivered: {location}")
        return location

    def _timestamp(self) -> str:
        return self.clock().strftime("%Y-%m-%d %H:%M:%S")

    def deliver_to_files(self, target: FilesTarget, project_id: int, content: bytes, filename: str) -> str:
        version_id = None
        if target.version:
            version_id = self.resolver.resolve_version(project_id, target.version)

        token = self.assistant.upload_file(content, filename)
        created = self.assistant.create_project_file(
            project_id,
            token,
            filename,
            description=f"Project analysis report generated on {self._timestamp()}",
            version_id=version_id,
        )
        return created.get("content_url") or f"{self.assistant.base_url}/projects/{project_id}/files"

    def deliver_to_issue(self, target: IssueTarget, project_id: int, content: bytes, filename: str) -> str:
        token = self.assistant.upload_file(content, filename)
        self.assistant.update_issue(
            target.issue_id,
            notes=f"Project analysis report attached (generated on {self._timestamp()})",
            uploads=[{"token": token, "filename": filename}],
        )
        return f"{self.assistant.base_url}/issues/{target.issue_id}"

    def deliver_to_wiki(self, target: WikiTarget, project_id: int, content: bytes, filename: str) -> str:
        """Read-modify-write of the page text; concurrent writers overwrite each other."""
        title = target.title or self.wiki_page
        token = self.assistant.upload_file(content, filename)

        page = self.assistant.get_wiki_page(project_id, title)
        if page is None:
            current_text = f"h1. {title}\n\nProject analysis reports are attached to this page."
        else:
            current_text = page.get("text") or ""

        new_text = current_text + f"\n\n---\n*Report generated on {self._timestamp()}*\nattachment:{filename}"
        self.assistant.create_or_update_wiki_page(
            project_id,
            title,
            new_text,
            comments="Added analysis report",
            uploads=[{"token": token, "filename": filename}],
        )
        return f"{self.assistant.base_url}/projects/{project_id}/wiki/{quote(title, safe='')}"

    def deliver_to_dmsf(self, target: DmsfTarget, project_id: int, content: bytes, filename: str) -> str:
        now = self.clock()
        document = self.assistant.dmsf_create_file(
            project_id,
            content,
            filename,
            title=f"Project Analysis Report - {now.strftime('%Y-%m-%d')}",
            description=f"Project analysis report generated on {now.strftime('%Y-%m-%d %H:%M:%S')}",
            folder_id=target.folder_id,
        )
        return f"{self.assistant.base_url}/dmsf/files/{document.get('id')}/{filename}"
