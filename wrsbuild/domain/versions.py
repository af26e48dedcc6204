"""Dot-separated servicing versions with numeric ordering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, order=True)
class ServicingVersion:
    """Comparable ordinal version such as ``10.0.17763.292``.

    Components compare numerically, so ``10.0`` sorts after ``9.0``. A version
    that is a prefix of a longer one sorts first (``10.0`` < ``10.0.1``).
    """

    parts: Tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValueError("ServicingVersion requires at least one component.")
        if any((not isinstance(part, int)) or part < 0 for part in self.parts):
            raise ValueError(f"Invalid version components: {self.parts!r}")

    @classmethod
    def parse(cls, raw: object) -> "ServicingVersion":
        """Parse dot-separated text into a version, rejecting blanks and non-digits."""
        text = str(raw or "").strip()
        if not text:
            raise ValueError("Version text must be non-empty.")
        parts = []
        for token in text.split("."):
            token = token.strip()
            if not (token.isascii() and token.isdigit()):
                raise ValueError(f"Invalid version component {token!r} in {text!r}.")
            parts.append(int(token))
        return cls(tuple(parts))

    def __str__(self) -> str:
        return ".".join(str(part) for part in self.parts)


__all__ = ["ServicingVersion"]
