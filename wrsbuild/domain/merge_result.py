"""Tri-state outcome of a differential merge and copy exit-code classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple

MergeOutcome = Literal["success", "warning", "failure"]

# Copy exit codes are a bit field: 1 copied, 2 extras, 4 mismatches, 8 failures.
_EXIT_CODE_TABLE: Dict[int, Tuple[MergeOutcome, str]] = {
    0: ("success", "No files were copied; source and destination are in sync."),
    1: ("success", "All files were copied successfully."),
    2: ("success", "Extra files or directories exist at the destination; nothing was copied."),
    3: ("success", "Some files were copied; extra files exist at the destination."),
    5: ("success", "Some files were copied; some files were mismatched. No failure was encountered."),
    6: ("warning", "Extra files and mismatched files exist; nothing was copied."),
    7: ("warning", "Files were copied, a file mismatch was present and extra files exist."),
    8: ("failure", "Several files did not copy."),
}


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merge attempt with the copy tool's classification."""

    outcome: MergeOutcome
    reason: str
    exit_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        """Return whether the ledger may record the merge as done."""
        return self.outcome != "failure"

    @property
    def is_warning(self) -> bool:
        return self.outcome == "warning"

    @classmethod
    def failed(cls, reason: str, exit_code: Optional[int] = None) -> "MergeResult":
        return cls(outcome="failure", reason=reason, exit_code=exit_code)


def classify_copy_exit_code(exit_code: int) -> MergeResult:
    """Collapse a copy tool exit code into success / warning / failure."""
    code = int(exit_code)
    outcome, reason = _EXIT_CODE_TABLE.get(
        code,
        ("failure", f"Copy failed with exit code {code}; at least one serious error occurred."),
    )
    return MergeResult(outcome=outcome, reason=reason, exit_code=code)


__all__ = ["MergeOutcome", "MergeResult", "classify_copy_exit_code"]
