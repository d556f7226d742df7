"""Shared type definitions for wp_image_renamer.

This module contains enums and dataclasses shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TypedDict


class AuthMethod(str, Enum):
    """WordPress authentication mechanism."""

    APPLICATION_PASSWORD = "application_password"
    JWT = "jwt"


class SiteStatus(str, Enum):
    """Connection status of a stored site."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ImageStatus(str, Enum):
    """Lifecycle status of a staged image."""

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    UPLOADED = "uploaded"
    ERROR = "error"


class TargetPage(TypedDict, total=False):
    """WordPress page an image is associated with."""

    id: int
    title: str
    slug: str
    status: str
    parent: int
    link: str
    template: str


@dataclass
class BatchResult:
    """Outcome of a sequential batch operation.

    Per-item failures are recorded as "<label>: <message>" strings and
    never stop the batch.
    """

    total: int = 0
    succeeded: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        """Number of failed items."""
        return len(self.errors)

    def record_error(self, label: str, message: str) -> None:
        """Record a per-item failure."""
        self.errors.append(f"{label}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": list(self.errors),
        }


__all__ = [
    "AuthMethod",
    "BatchResult",
    "ImageStatus",
    "SiteStatus",
    "TargetPage",
]
