"""
Delivery target descriptors: ``kind[:param]`` parsed once into one value class per kind.

    files            project Files list
    files:<version>  project Files list, attached to a release
    issue:<id>       note with attachment on an existing issue
    wiki[:<title>]   reference appended to a wiki page (created if absent)
    dmsf[:<folder>]  DMSF document upload, optionally into a folder
"""

from dataclasses import dataclass
from typing import Optional

from domains.redmine.core.error import InvalidDeliveryTargetError


class DeliveryTarget:
    """Base class of the parsed descriptors."""

    kind: str = ""

    def describe(self) -> str:
        return self.kind


@dataclass(frozen=True)
class FilesTarget(DeliveryTarget):
    version: Optional[str] = None
    kind = "files"

    def describe(self) -> str:
        return f"files:{self.version}" if self.version else "files"


@dataclass(frozen=True)
class IssueTarget(DeliveryTarget):
    issue_id: int
    kind = "issue"

    def describe(self) -> str:
        return f"issue:{self.issue_id}"


@dataclass(frozen=True)
class WikiTarget(DeliveryTarget):
    title: Optional[str] = None
    kind = "wiki"

    def describe(self) -> str:
        return f"wiki:{self.title}" if self.title else "wiki"


@dataclass(frozen=True)
class DmsfTarget(DeliveryTarget):
    folder_id: Optional[int] = None
    kind = "dmsf"

    def describe(self) -> str:
        return f"dmsf:{self.folder_id}" if self.folder_id is not None else "dmsf"


def _positive_int(value: str, descriptor: str, what: str) -> int:
    if not value.isdigit() or int(value) <= 0:
        raise InvalidDeliveryTargetError(f"{what} must be a positive integer", descriptor=descriptor)
    return int(value)


def parse_delivery_target(descriptor: Optional[str]) -> Optional[DeliveryTarget]:
    """
    Parse an attach-to descriptor.

    Args:
        descriptor (Optional[str]): e.g. "issue:123", "wiki", "files:v1.0". Blank means no delivery.

    Returns:
        Optional[DeliveryTarget]: The parsed target, or None when nothing should be uploaded.

    Raises:
        InvalidDeliveryTargetError: For unknown kinds or malformed parameters.
    """
    if descriptor is None or not descriptor.strip():
        return None

    kind, sep, param = descriptor.strip().partition(":")
    kind = kind.strip().lower()
    param = param.strip()
    if sep and not param:
        raise InvalidDeliveryTargetError("Missing parameter after ':'", descriptor=descriptor)

    if kind == "files":
        return FilesTarget(version=param or None)
    if kind == "issue":
        if not param:
            raise InvalidDeliveryTargetError("issue target requires an issue id", descriptor=descriptor)
        return IssueTarget(issue_id=_positive_int(param.lstrip("#"), descriptor, "Issue id"))
    if kind == "wiki":
        return WikiTarget(title=param or None)
    if kind == "dmsf":
        return DmsfTarget(folder_id=_positive_int(param, descriptor, "DMSF folder id") if param else None)

    raise InvalidDeliveryTargetError(
        f"Unknown delivery target '{kind}', expected files, issue, wiki or dmsf", descriptor=descriptor
    )
