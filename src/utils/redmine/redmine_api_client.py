from typing import Optional

import requests

from utils.logging.logging_manager import LogManager
from utils.redmine.error import RedmineApiRequestError


class RedmineApiClient:
    """
    Thin Redmine REST client: JSON requests, raw uploads, response handling and error wrapping.
    """

    def __init__(self, base_url: str, api_key: str, timeout: int = 30):
        """
        Initialize the Redmine API client.

        Args:
            base_url (str): The Redmine server URL.
            api_key (str): The API key sent in the X-Redmine-API-Key header.
            timeout (int): Per-request timeout in seconds.
        """
        self.logger = LogManager.get_instance().get_logger("RedmineApiClient")
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Redmine-API-Key": api_key,
        }

    def _handle_response(self, response: requests.Response):
        """
        Handle the HTTP response from the Redmine API.

        Args:
            response (requests.Response): The HTTP response object.

        Returns:
            dict or None: Parsed JSON response, or None if no content.

        Raises:
            RedmineApiRequestError: If the body claims to be JSON but cannot be parsed.
        """
        self.logger.debug(f"HTTP Status: {response.status_code}")

        if response.status_code == 204 or not response.content:
            return None

        if response.headers.get("Content-Type", "").startswith("application/json"):
            try:
                return response.json()
            except ValueError as e:
                self.logger.error(f"Failed to parse JSON response: {e}")
                raise RedmineApiRequestError(
                    message="Invalid JSON in response",
                    endpoint=response.url,
                    status_code=response.status_code,
                ) from e

        self.logger.warning(f"Unexpected content type: {response.headers.get('Content-Type')}")
        return {"raw_response": response.content.decode("utf-8", errors="replace")}

    @staticmethod
    def _describe_failure(response: Optional[requests.Response]) -> str:
        """Extracts Redmine's ``errors`` list (or a slice of the raw body) for the error message."""
        if response is None:
            return ""
        try:
            details = response.json()
        except ValueError:
            text = response.text or ""
            return f" - Response: {text[:500]}" if text else ""
        if isinstance(details, dict) and details.get("errors"):
            return f" - {'; '.join(str(error) for error in details['errors'])}"
        return ""

    def _request(self, method: str, endpoint: str, headers: Optional[dict] = None, **kwargs):
        """
        Make an HTTP request to the Redmine API.

        Args:
            method (str): HTTP method ('GET', 'POST', 'PUT', etc.).
            endpoint (str): Path relative to the server URL, e.g. ``issues.json``.
            headers (dict, optional): Headers overriding the defaults.

        Returns:
            dict or None: Parsed JSON response or None if no content.

        Raises:
            RedmineApiRequestError: If the request fails or the response is invalid.
        """
        url = f"{self.base_url}{endpoint.lstrip('/')}"
        request_headers = {**self.headers, **(headers or {})}
        try:
            self.logger.debug(f"Sending {method.upper()} request to {url} with params {kwargs.get('params')}")
            response = requests.request(method, url, headers=request_headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return self._handle_response(response)
        except requests.RequestException as e:
            failed_response = getattr(e, "response", None)
            error_message = f"Failed to execute {method.upper()} request" + self._describe_failure(failed_response)
            self.logger.error(f"{method.upper()} {endpoint} failed: {error_message}")
            raise RedmineApiRequestError(
                message=error_message,
                endpoint=endpoint,
                params=kwargs.get("params"),
                payload=kwargs.get("json"),
                status_code=getattr(failed_response, "status_code", None),
            ) from e

    def get(self, endpoint: str, params: Optional[dict] = None):
        """
        Make a GET request to the Redmine API.

        Args:
            endpoint (str): The API endpoint to call.
            params (dict, optional): Query parameters to include in the request.

        Returns:
            dict or None: The JSON response from the API.
        """
        return self._request("GET", endpoint, params=params)

    def post(self, endpoint: str, payload: dict, params: Optional[dict] = None):
        """
        Make a POST request to the Redmine API.

        Args:
            endpoint (str): The API endpoint to call.
            payload (dict): The JSON payload to send in the request body.
            params (dict, optional): Query parameters to include in the request.

        Returns:
            dict or None: The JSON response from the API.
        """
        return self._request("POST", endpoint, json=payload, params=params)

    def put(self, endpoint: str, payload: dict):
        """
        Make a PUT request to the Redmine API.

        Args:
            endpoint (str): The API endpoint to call.
            payload (dict): The JSON payload to send in the request body.

        Returns:
            dict or None: The JSON response from the API.
        """
        return self._request("PUT", endpoint, json=payload)

    def upload(self, endpoint: str, content: bytes, params: Optional[dict] = None):
        """
        POST raw bytes as ``application/octet-stream``, as Redmine's upload endpoints expect.

        Args:
            endpoint (str): The upload endpoint.
            content (bytes): File content.
            params (dict, optional): Query parameters, e.g. the file name.

        Returns:
            dict or None: The JSON response from the API.
        """
        return self._request(
            "POST",
            endpoint,
            headers={"Content-Type": "application/octet-stream"},
            data=content,
            params=params,
        )
