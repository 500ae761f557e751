import os
import sys

from log_config import log_manager
from utils.command.command_manager import CommandManager
from utils.error.error_manager import handle_generic_exception

logger = log_manager.get_logger("CLI")


def main():
    """Entry point for the CLI. Discovers domain commands and runs the one requested."""
    command_manager = CommandManager(os.path.join(os.path.dirname(__file__), "domains"))
    command_manager.load_commands()
    parser = command_manager.build_parser()

    args, unknown = parser.parse_known_args()

    if "help" in unknown or not getattr(args, "func", None):
        parser.print_help()
        return

    if unknown:
        logger.warning(f"Ignoring unknown arguments: {' '.join(unknown)}")

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except Exception as e:
        handle_generic_exception(e, "An error occurred during execution.", {"command": getattr(args, "command", None)})


if __name__ == "__main__":
    main()
