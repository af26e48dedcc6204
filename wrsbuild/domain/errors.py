"""Domain-level error types shared by adapters and use cases.

Every error carries a stable ``code``, a human-readable ``message`` and an
optional ``hint`` so log lines and run reports stay uniform regardless of which
layer raised them.
"""

from __future__ import annotations


class WrsError(RuntimeError):
    """Base exception containing a typed error payload."""

    def __init__(self, code: str, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = str(message)
        self.hint = str(hint or "")

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} ({self.hint})"
        return self.message


class HistoryLoadError(WrsError):
    """Raised when an existing history document cannot be read or parsed."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__("history.load_failed", message, hint)


class HistoryPersistError(WrsError):
    """Raised when the history document cannot be written back to disk.

    In-memory and on-disk ledger state would diverge past this point, so the
    error always aborts the current image.
    """

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__("history.persist_failed", message, hint)


class DuplicateEntryError(WrsError):
    """Raised when appending an identifier that already exists in a history."""

    def __init__(self, identifier: str) -> None:
        super().__init__(
            "history.duplicate_entry",
            f"Update entry {identifier} already exists",
            "Check has_entry() before appending.",
        )
        self.identifier = identifier


class DiscoveryError(WrsError):
    """Per-package discovery failure; the package is excluded from this run."""

    def __init__(self, code: str, message: str, hint: str = "") -> None:
        super().__init__(code, message, hint)


class IdentifierError(DiscoveryError):
    """Raised when a package filename does not yield exactly one KB identifier."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__("discovery.identifier_invalid", message, hint)


class ManifestError(DiscoveryError):
    """Raised when a package manifest cannot be extracted or parsed."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__("discovery.manifest_invalid", message, hint)


class CollaboratorError(WrsError):
    """Raised by external tool adapters (imaging, install, copy, extract)."""

    def __init__(
        self,
        code: str,
        message: str,
        hint: str = "",
        *,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(code, message, hint)
        self.exit_code = exit_code


class SettingsError(WrsError):
    """Raised when run settings are missing or invalid."""

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__("settings.invalid", message, hint)


__all__ = [
    "CollaboratorError",
    "DiscoveryError",
    "DuplicateEntryError",
    "HistoryLoadError",
    "HistoryPersistError",
    "IdentifierError",
    "ManifestError",
    "SettingsError",
    "WrsError",
]
