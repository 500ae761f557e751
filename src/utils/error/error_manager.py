from utils.error.base_custom_error import BaseCustomError
from utils.logging.logging_manager import LogManager


class CommandExecutionError(BaseCustomError):
    """Raised at the CLI boundary when a command fails."""

    pass


def handle_generic_exception(exception: Exception, context_message: str, metadata: dict | None = None):
    """Logs an exception raised by a command and re-raises it with context.

    :param exception: The exception raised.
    :param context_message: Custom message providing context for the error.
    :param metadata: Additional metadata (optional) for debugging purposes.
    """
    logger = LogManager.get_instance().get_logger("ErrorManager")
    metadata = metadata or {}
    metadata_info = f" | Metadata: {metadata}" if metadata else ""
    logger.error(
        f"An error occurred: {context_message}{metadata_info} - {exception}",
        exc_info=True,
    )
    raise CommandExecutionError(context_message, error=str(exception), **metadata) from exception
