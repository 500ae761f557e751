from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace


class BaseCommand(ABC):
    """Abstract base class for CLI commands discovered under the domains package."""

    @staticmethod
    @abstractmethod
    def get_name() -> str:
        """Returns the name the command is registered under.

        Returns:
            str: The name of the command.
        """
        pass

    @staticmethod
    def get_description() -> str:
        """Returns the long description shown by ``--help``."""
        return "No description provided."

    @staticmethod
    def get_help() -> str:
        """Returns the one-line help shown in the parent command listing."""
        return "No help available."

    @classmethod
    def register_command(cls, parent_parser):
        """Registers the command in the given subparsers action.

        Args:
            parent_parser (_SubParsersAction): The subparsers to add the command to.
        """
        parser = parent_parser.add_parser(
            cls.get_name(),
            description=cls.get_description(),
            help=cls.get_help(),
        )
        cls.get_arguments(parser)
        parser.set_defaults(func=cls.main)

    @staticmethod
    @abstractmethod
    def get_arguments(parser: ArgumentParser):
        """Adds arguments to the parser.

        Args:
            parser (ArgumentParser): The parser to which arguments are added.
        """
        pass

    @staticmethod
    @abstractmethod
    def main(args: Namespace):
        """Executes the command.

        Args:
            args (Namespace): Parsed arguments from the CLI.
        """
        pass
