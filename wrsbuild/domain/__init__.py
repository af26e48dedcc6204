"""Domain package exports for the servicing ledger and merge outcomes."""

from .entities import (
    BASELINE_ID,
    HISTORY_FILENAME,
    ImageScan,
    OSImage,
    ServicingHistory,
    UpdateEntry,
)
from .merge_result import MergeResult, classify_copy_exit_code
from .versions import ServicingVersion

__all__ = [
    "BASELINE_ID",
    "HISTORY_FILENAME",
    "ImageScan",
    "MergeResult",
    "OSImage",
    "ServicingHistory",
    "ServicingVersion",
    "UpdateEntry",
    "classify_copy_exit_code",
]
