from utils.error.base_custom_error import BaseCustomError


class ProjectAnalysisError(BaseCustomError):
    """
    Base exception for the project analysis engine.
    """

    pass


class FetchError(ProjectAnalysisError):
    """
    Raised when a page of time entries or issues cannot be retrieved.
    """

    def __init__(self, message: str = "Failed to fetch analysis data", **metadata):
        super().__init__(message, **metadata)


class FilterResolutionError(ProjectAnalysisError):
    """
    Raised when a filter (version, project) cannot be resolved to an id.
    """

    def __init__(self, message: str = "Failed to resolve analysis filter", **metadata):
        super().__init__(message, **metadata)


class RenderError(ProjectAnalysisError):
    """
    Raised when the result cannot be encoded into the requested format.
    """

    def __init__(self, message: str = "Failed to render report", **metadata):
        super().__init__(message, **metadata)


class InvalidDeliveryTargetError(ProjectAnalysisError):
    """
    Raised when an attach-to descriptor is unknown or malformed.
    """

    def __init__(self, message: str = "Invalid delivery target", **metadata):
        super().__init__(message, **metadata)


class DeliveryError(ProjectAnalysisError):
    """
    Raised when a rendered report cannot be delivered. ``report`` holds the already computed
    report so the caller can retry delivery or return the bytes inline.
    """

    def __init__(self, message: str = "Failed to deliver report", report=None, **metadata):
        super().__init__(message, **metadata)
        self.report = report
