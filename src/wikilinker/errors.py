"""Exception hierarchy for wikilinker."""

from __future__ import annotations


class WikilinkerError(Exception):
    """Base class for all wikilinker errors."""


class ConfigError(WikilinkerError):
    """Entity-type configuration is missing or malformed."""


class ServiceError(WikilinkerError):
    """An external semantic call failed or returned a reply that does not validate.

    Never fatal to a whole run: callers fall back per call site.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class TaggingError(ServiceError):
    """Tagging failed; resolution of that document is aborted."""

    def __init__(self, message: str) -> None:
        super().__init__("tagging", message)


class RecordNotFoundError(WikilinkerError):
    """A referenced record or backlink source no longer exists."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Record not found: {path}")
        self.path = path


class ResolutionCancelledError(WikilinkerError):
    """The resolution run was cancelled between entities."""


class ReviewCancelledError(WikilinkerError):
    """The human reviewer cancelled; nothing is written back."""


class MetadataParseError(WikilinkerError):
    """A record's frontmatter exists but cannot be parsed, so it cannot be safely rewritten."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unparseable metadata in {path}: {reason}")
        self.path = path
