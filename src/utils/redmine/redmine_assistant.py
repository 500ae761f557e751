from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from utils.logging.logging_manager import LogManager
from utils.redmine.error import (
    RedmineApiRequestError,
    RedmineQueryError,
    RedmineUploadError,
    RedmineWikiError,
)
from utils.redmine.redmine_api_client import RedmineApiClient
from utils.redmine.redmine_config import RedmineConfig


class RedmineAssistant:
    """
    A generic assistant for interacting with the Redmine REST API.
    Wraps the raw client with typed operations for time entries, issues, projects,
    versions, uploads, wiki pages and DMSF documents.
    """

    _logger = LogManager.get_instance().get_logger("RedmineAssistant")

    def __init__(self, client: Optional[RedmineApiClient] = None):
        """
        Initializes the RedmineAssistant.

        Args:
            client (Optional[RedmineApiClient]): Pre-built client. When omitted one is created from
                RedmineConfig.
        """
        if client is None:
            redmine_config = RedmineConfig()
            if not redmine_config.base_url or not redmine_config.api_key:
                raise ValueError(
                    "RedmineConfig is missing required fields: base_url or api_key. "
                    f"base_url={redmine_config.base_url}, "
                    f"api_key={'***' if redmine_config.api_key else None}"
                )
            client = RedmineApiClient(redmine_config.base_url, redmine_config.api_key, redmine_config.timeout)
        self.client = client

    @property
    def base_url(self) -> str:
        """Server URL without trailing slash, used to build absolute links."""
        return self.client.base_url.rstrip("/")

    @staticmethod
    def _page(response: Optional[Dict], key: str, endpoint: str) -> Tuple[List[Dict], int]:
        """
        Split a listing response into its records and total_count.

        Raises:
            RedmineQueryError: When the body lacks the expected collection, e.g. an HTML page
                served with status 200 by a proxy or login screen.
        """
        records = response.get(key) if isinstance(response, dict) else None
        if not isinstance(records, list):
            preview = str(response.get("raw_response", ""))[:200] if isinstance(response, dict) else ""
            raise RedmineQueryError(
                f"Unexpected response from {endpoint}: no '{key}' list.", endpoint=endpoint, body=preview
            )
        return records, int(response.get("total_count", len(records)))

    def list_time_entries(
        self,
        project_id: int,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Dict], int]:
        """
        Fetch one page of time entries for a project.

        Args:
            project_id (int): Project id.
            date_from (Optional[str]): Inclusive lower bound (YYYY-MM-DD).
            date_to (Optional[str]): Inclusive upper bound (YYYY-MM-DD).
            limit (int): Page size.
            offset (int): Page offset.

        Returns:
            Tuple[List[Dict], int]: The page records and the server-reported total.
        """
        params = {"project_id": project_id, "limit": limit, "offset": offset}
        if date_from:
            params["from"] = date_from
        if date_to:
            params["to"] = date_to
        if not date_from and not date_to:
            # Without a bound Redmine narrows the default window, ask for every date
            params["spent_on"] = "*"

        try:
            return self._page(self.client.get("time_entries.json", params=params), "time_entries", "time_entries.json")
        except RedmineApiRequestError as e:
            raise RedmineQueryError(
                "Error fetching time entries.", project_id=project_id, offset=offset, error=str(e)
            ) from e

    def search_issues(
        self,
        project_id: int,
        status_id: str = "*",
        fixed_version_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Dict], int]:
        """
        Fetch one page of issues for a project.

        Args:
            project_id (int): Project id.
            status_id (str): "open", "closed" or "*".
            fixed_version_id (Optional[int]): Restrict to one target version.
            limit (int): Page size.
            offset (int): Page offset.

        Returns:
            Tuple[List[Dict], int]: The page records and the server-reported total.
        """
        params = {"project_id": project_id, "status_id": status_id, "limit": limit, "offset": offset}
        if fixed_version_id is not None:
            params["fixed_version_id"] = fixed_version_id

        try:
            return self._page(self.client.get("issues.json", params=params), "issues", "issues.json")
        except RedmineApiRequestError as e:
            raise RedmineQueryError(
                "Error fetching issues.", project_id=project_id, offset=offset, error=str(e)
            ) from e

    def get_project(self, project_id) -> Dict:
        """
        Fetch a single project by id or identifier.
        """
        try:
            response = self.client.get(f"projects/{project_id}.json") or {}
            return response.get("project", {})
        except RedmineApiRequestError as e:
            raise RedmineQueryError("Error fetching project.", project_id=project_id, error=str(e)) from e

    def list_projects(self, page_size: int = 100) -> List[Dict]:
        """
        Fetch every project visible to the API key.

        Returns:
            List[Dict]: All projects.
        """
        projects: List[Dict] = []
        offset = 0
        try:
            while True:
                response = self.client.get("projects.json", params={"limit": page_size, "offset": offset})
                page, total = self._page(response, "projects", "projects.json")
                projects.extend(page)
                offset += len(page)
                if not page or offset >= total:
                    break
            return projects
        except RedmineApiRequestError as e:
            raise RedmineQueryError("Error listing projects.", error=str(e)) from e

    def list_versions(self, project_id) -> List[Dict]:
        """
        Fetch the versions (releases) of a project, including shared ones.
        """
        try:
            endpoint = f"projects/{project_id}/versions.json"
            return self._page(self.client.get(endpoint), "versions", endpoint)[0]
        except RedmineApiRequestError as e:
            raise RedmineQueryError("Error listing versions.", project_id=project_id, error=str(e)) from e

    def upload_file(self, content: bytes, filename: str) -> str:
        """
        Upload bytes and return the token used to attach them to a file, issue or wiki page.

        Args:
            content (bytes): File content.
            filename (str): Name announced to the server.

        Returns:
            str: Upload token.
        """
        try:
            response = self.client.upload("uploads.json", content, params={"filename": filename}) or {}
        except RedmineApiRequestError as e:
            raise RedmineUploadError("Error uploading file.", filename=filename, error=str(e)) from e

        token = response.get("upload", {}).get("token")
        if not token:
            raise RedmineUploadError("Upload response did not contain a token.", filename=filename)
        self._logger.info(f"Uploaded '{filename}' ({len(content)} bytes)")
        return token

    def create_project_file(
        self,
        project_id,
        token: str,
        filename: str,
        description: str = "",
        version_id: Optional[int] = None,
    ) -> Dict:
        """
        Commit an uploaded token to the project's Files list.

        Returns:
            Dict: The created file record (may be empty when the server answers 204).
        """
        file_payload = {"token": token, "filename": filename, "description": description}
        if version_id is not None:
            file_payload["version_id"] = version_id
        try:
            response = self.client.post(f"projects/{project_id}/files.json", {"file": file_payload}) or {}
            return response.get("file", {})
        except RedmineApiRequestError as e:
            raise RedmineUploadError(
                "Error adding file to project.", project_id=project_id, filename=filename, error=str(e)
            ) from e

    def update_issue(self, issue_id: int, notes: str, uploads: Optional[List[Dict]] = None) -> None:
        """
        Add a note (and optional attachments) to an existing issue.

        Args:
            issue_id (int): Issue id.
            notes (str): Journal note text.
            uploads (Optional[List[Dict]]): Items of the form {"token", "filename"}.
        """
        issue_payload: Dict = {"notes": notes}
        if uploads:
            issue_payload["uploads"] = uploads
        try:
            self.client.put(f"issues/{issue_id}.json", {"issue": issue_payload})
        except RedmineApiRequestError as e:
            raise RedmineUploadError("Error updating issue.", issue_id=issue_id, error=str(e)) from e

    def get_wiki_page(self, project_id, title: str) -> Optional[Dict]:
        """
        Fetch a wiki page.

        Returns:
            Optional[Dict]: The page, or None when it does not exist.
        """
        try:
            response = self.client.get(f"projects/{project_id}/wiki/{quote(title, safe='')}.json") or {}
            return response.get("wiki_page")
        except RedmineApiRequestError as e:
            if e.status_code == 404:
                return None
            raise RedmineWikiError("Error reading wiki page.", project_id=project_id, title=title, error=str(e)) from e

    def create_or_update_wiki_page(
        self,
        project_id,
        title: str,
        text: str,
        comments: str = "",
        uploads: Optional[List[Dict]] = None,
    ) -> None:
        """
        Create the page when missing, replace its text otherwise. Uploads are attached to the page.
        """
        page_payload: Dict = {"text": text, "comments": comments}
        if uploads:
            page_payload["uploads"] = uploads
        try:
            self.client.put(f"projects/{project_id}/wiki/{quote(title, safe='')}.json", {"wiki_page": page_payload})
        except RedmineApiRequestError as e:
            raise RedmineWikiError("Error writing wiki page.", project_id=project_id, title=title, error=str(e)) from e

    def dmsf_create_file(
        self,
        project_id,
        content: bytes,
        filename: str,
        title: str,
        description: str = "",
        folder_id: Optional[int] = None,
    ) -> Dict:
        """
        Store a document through the DMSF plugin: raw upload followed by the commit call.

        Returns:
            Dict: The created DMSF file record (contains at least its id).
        """
        try:
            upload = self.client.upload(
                f"projects/{project_id}/dmsf/upload.json", content, params={"filename": filename}
            ) or {}
            token = upload.get("upload", {}).get("token")
            if not token:
                raise RedmineUploadError("DMSF upload response did not contain a token.", filename=filename)

            commit_payload: Dict = {
                "attachments": {
                    "uploaded_file": {
                        "name": filename,
                        "token": token,
                        "title": title,
                        "description": description,
                        "comment": description,
                    }
                }
            }
            if folder_id is not None:
                commit_payload["attachments"]["folder_id"] = folder_id
            response = self.client.post(f"projects/{project_id}/dmsf/commit.json", commit_payload) or {}
        except RedmineApiRequestError as e:
            raise RedmineUploadError(
                "Error storing DMSF document.", project_id=project_id, filename=filename, error=str(e)
            ) from e

        files = response.get("dmsf_files") or []
        if not files:
            raise RedmineUploadError("DMSF commit returned no file.", project_id=project_id, filename=filename)
        return files[0]
