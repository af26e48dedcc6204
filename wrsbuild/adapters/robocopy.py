"""Robocopy-backed implementation of the copy port."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from wrsbuild.domain.ports import CopyPort

from .process import run_tool


class RobocopyCopier(CopyPort):
    """Additive, attribute-preserving recursive copy.

    Never passes ``/MIR`` or ``/PURGE``: files that exist only at the
    destination are kept. Unchanged files are skipped by robocopy itself.
    """

    def __init__(
        self,
        executable: str = "robocopy.exe",
        *,
        retries: int = 3,
        wait_s: int = 5,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.executable = executable
        self.retries = int(retries)
        self.wait_s = int(wait_s)
        self._log = logger or logging.getLogger("wrsbuild.robocopy")

    def build_args(self, source: Path, destination: Path) -> List[str]:
        return [
            self.executable,
            str(source),
            str(destination),
            "/E",
            "/COPY:DAT",
            "/DCOPY:T",
            f"/R:{self.retries}",
            f"/W:{self.wait_s}",
            "/NP",
            "/NFL",
            "/NDL",
        ]

    def copy_tree(self, source: Path, destination: Path) -> int:
        result = run_tool(self.build_args(source, destination), code="copy.failed", log=self._log)
        return int(result.returncode)


__all__ = ["RobocopyCopier"]
