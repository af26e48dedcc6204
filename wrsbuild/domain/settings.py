"""Typed run settings for a repair-source build."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .entities import HISTORY_FILENAME
from .versions import ServicingVersion


class BuildSettings(BaseModel):
    """Paths, tool locations and copy policy for one invocation."""

    model_config = ConfigDict(extra="forbid")

    image_root: Path = Field(..., description="Folder containing one sub-folder per OS image")
    wrs_root: Path = Field(..., description="Root of the versioned repair-source output tree")
    mount_root: Path = Field(..., description="Scratch folder for per-image mount directories")
    image_index: int = Field(1, ge=1, description="Sub-image index inside each WIM")
    package_glob: str = Field("*.msu", description="File pattern for update packages")
    history_filename: str = Field(HISTORY_FILENAME, description="Sidecar ledger file name")
    copy_retries: int = Field(3, ge=0, description="Per-file retries inside the copy tool")
    copy_wait_s: int = Field(5, ge=0, description="Seconds between per-file copy retries")
    dism_executable: str = "dism.exe"
    robocopy_executable: str = "robocopy.exe"
    expand_executable: str = "expand.exe"
    image_versions: Dict[str, str] = Field(
        default_factory=dict,
        description="Optional folder name -> image version overrides",
    )
    only: List[str] = Field(default_factory=list, description="Restrict the run to these folders")
    log_file: Optional[Path] = None
    log_level: Optional[str] = None

    @field_validator("package_glob", "history_filename")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    @field_validator("image_versions")
    @classmethod
    def _valid_versions(cls, value: Dict[str, str]) -> Dict[str, str]:
        for folder, raw in value.items():
            try:
                ServicingVersion.parse(raw)
            except ValueError as exc:
                raise ValueError(f"image_versions[{folder!r}]: {exc}") from exc
        return value


__all__ = ["BuildSettings"]
