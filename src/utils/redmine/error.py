from utils.error.base_custom_error import BaseCustomError


class RedmineManagerError(BaseCustomError):
    """
    Base exception class for all Redmine assistant related errors.
    """

    pass


class RedmineQueryError(RedmineManagerError):
    """
    Raised when listing time entries, issues, projects or versions fails.
    """

    def __init__(self, message: str = "Error querying Redmine", **metadata):
        super().__init__(message, **metadata)


class RedmineUploadError(RedmineManagerError):
    """
    Raised when uploading a file or committing an upload fails.
    """

    def __init__(self, message: str = "Failed to upload file to Redmine", **metadata):
        super().__init__(message, **metadata)


class RedmineWikiError(RedmineManagerError):
    """
    Raised when reading or writing a wiki page fails.
    """

    def __init__(self, message: str = "Failed to access Redmine wiki page", **metadata):
        super().__init__(message, **metadata)


class RedmineResolveError(RedmineManagerError):
    """
    Raised when a project or version reference matches nothing or more than one candidate.
    """

    def __init__(self, message: str = "Failed to resolve Redmine reference", **metadata):
        super().__init__(message, **metadata)


class RedmineApiClientError(BaseCustomError):
    """
    Base exception class for RedmineApiClient.
    """

    pass


class RedmineApiRequestError(RedmineApiClientError):
    """
    Raised for errors during API requests.
    """

    def __init__(self, message: str, endpoint: str, payload=None, params=None, status_code=None):
        super().__init__(
            message,
            endpoint=endpoint,
            payload=payload,
            params=params,
            status_code=status_code,
        )
        self.status_code = status_code
