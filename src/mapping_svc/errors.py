"""Errors raised while resolving class metadata."""

from __future__ import annotations


class MetadataError(Exception):
    """Base class for metadata resolution failures."""
    pass


class UnresolvableClassError(MetadataError):
    """Raised when a class cannot be located or introspected."""

    def __init__(self, class_name: str, reason: str | None = None):
        message = f"Class '{class_name}' cannot be resolved"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.class_name = class_name


class MappingInconsistencyError(MetadataError):
    """Raised when the raw mapping facts for a class are malformed or contradictory."""

    def __init__(self, class_name: str, message: str):
        super().__init__(f"{class_name}: {message}")
        self.class_name = class_name


class HierarchyValidationError(MetadataError):
    """Raised once per resolution when the assembled hierarchy fails validation."""

    def __init__(self, class_name: str, issues: list[str]):
        lines = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Metadata hierarchy for '{class_name}' is invalid "
            f"({len(issues)} issue{'s' if len(issues) != 1 else ''}):\n{lines}"
        )
        self.class_name = class_name
        self.issues = list(issues)


class GenerationError(MetadataError):
    """Raised when a generated artifact cannot be produced or read."""

    def __init__(self, class_name: str, message: str):
        super().__init__(f"{class_name}: {message}")
        self.class_name = class_name


class MetadataStateError(MetadataError):
    """Raised when a metadata object is used outside its lifecycle."""
    pass
