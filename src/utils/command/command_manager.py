import importlib
import inspect
import os
import pkgutil
from argparse import ArgumentParser, _SubParsersAction
from types import ModuleType

from utils.command.base_command import BaseCommand
from utils.logging.logging_manager import LogManager

from .error import (
    CommandLoadError,
    CommandManagerError,
    HierarchyConflictError,
    ModuleImportError,
)


class CommandManager:
    _logger = LogManager.get_instance().get_logger("CommandManager")

    def __init__(self, base_path: str, package: str = "domains"):
        self.base_path = os.path.abspath(base_path)
        self.package = package
        self.hierarchy: dict[str, dict] = {}

    def load_commands(self) -> None:
        """Walks the domains package and registers every BaseCommand subclass found."""
        self._logger.debug(f"Starting to load commands from base path: {self.base_path}")

        for root, _, _ in os.walk(self.base_path):
            if not os.path.isfile(os.path.join(root, "__init__.py")):
                self._logger.debug(f"Skipping non-package directory: {root}")
                continue

            for _, module_name, is_package in pkgutil.iter_modules([root]):
                if is_package:
                    # Sub-packages are visited by os.walk on their own
                    continue
                try:
                    module = self._import_module(root, module_name)
                    self._process_module(module)
                except CommandManagerError as e:
                    self._logger.error(str(e), exc_info=True)

        self._logger.debug("Finished loading commands.")

    def _module_path_from_root(self, root: str, module_name: str) -> str:
        """Builds the relative dotted path used by importlib for a module under base_path."""
        relative_path = os.path.relpath(root, self.base_path)
        if relative_path == ".":
            return f".{module_name}"
        package_path = relative_path.replace(os.sep, ".")
        return f".{package_path}.{module_name}"

    def _import_module(self, root: str, module_name: str) -> ModuleType:
        relative_path = self._module_path_from_root(root, module_name)
        self._logger.debug(f"Importing module {relative_path}")
        try:
            return importlib.import_module(relative_path, package=self.package)
        except Exception as e:
            raise ModuleImportError(module_path=relative_path, error=e) from e

    def _process_module(self, module: ModuleType):
        """Finds BaseCommand subclasses defined in a module and adds them to the hierarchy."""
        try:
            for name, obj in inspect.getmembers(module, inspect.isclass):
                if not issubclass(obj, BaseCommand) or obj is BaseCommand:
                    continue
                if obj.__module__ != module.__name__:
                    continue
                if inspect.isabstract(obj):
                    self._logger.debug(f"Command {name} is abstract and will be skipped.")
                    continue

                self._logger.debug(f"Found command class: {name}")
                self._add_to_hierarchy(obj)
        except HierarchyConflictError:
            raise
        except Exception as e:
            raise CommandLoadError(module_name=module.__name__, error=e) from e

    def _add_to_hierarchy(self, command: type[BaseCommand]):
        """Places a command under its domain path, e.g. domains.redmine.x -> redmine."""
        name_parts = command.__module__.split(".")[1:-1]
        command_name = command.get_name()

        current_level = self.hierarchy
        for part in name_parts:
            current_level = current_level.setdefault(part, {})

        if command_name in current_level:
            raise HierarchyConflictError(command_name=command_name)

        current_level[command_name] = {
            "name": command_name,
            "description": command.get_description(),
            "help": command.get_help(),
            "class": command,
        }
        self._logger.debug(f"Command {command_name} added under {'/'.join(name_parts)}.")

    def build_parser(self) -> ArgumentParser:
        """Builds the ArgumentParser hierarchy from the loaded command structure."""
        self._logger.debug("Building argument parser hierarchy")
        try:
            parser = ArgumentParser(
                prog="redmine-toolkit",
                description="redmine-toolkit CLI - project time and effort analysis for Redmine",
                add_help=False,
            )
            subparsers = parser.add_subparsers(dest="domain", help="Available domains")

            for domain_name, substructure in self.hierarchy.items():
                self._add_subparser(subparsers, domain_name, substructure)

            return parser
        except Exception as e:
            raise CommandManagerError("Failed to build argument parser hierarchy", error=e) from e

    def _add_subparser(self, subparsers: _SubParsersAction, name: str, substructure: dict):
        """Recursively adds subparsers for domains and their commands."""
        if "class" in substructure:
            self._logger.debug(f"Registering command: {substructure['name']}")
            substructure["class"].register_command(subparsers)
            return

        parser = subparsers.add_parser(name, help=f"{name} commands")
        parser_subparsers = parser.add_subparsers(dest="command", help=f"{name} subcommands")
        for key, value in substructure.items():
            self._add_subparser(parser_subparsers, key, value)
