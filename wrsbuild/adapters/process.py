"""Thin wrapper around ``subprocess.run`` for external servicing tools."""

from __future__ import annotations

import logging
import subprocess
from typing import Sequence

from wrsbuild.domain.errors import CollaboratorError


def run_tool(
    args: Sequence[str],
    *,
    code: str,
    log: logging.Logger,
) -> subprocess.CompletedProcess:
    """Run one external tool to completion and return the completed process.

    Missing executables and OS-level spawn failures raise
    :class:`CollaboratorError` with the given ``code``; non-zero exit codes are
    left to the caller because each tool has its own exit-code semantics.
    """
    command = [str(arg) for arg in args]
    log.debug("Running %s", subprocess.list2cmdline(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except FileNotFoundError as exc:
        raise CollaboratorError(
            code,
            f"Executable not found: {command[0]}",
            "Install the tool or set its path in the settings file.",
        ) from exc
    except OSError as exc:
        raise CollaboratorError(code, f"Failed to start {command[0]}", str(exc)) from exc
    log.debug("%s exited with %s", command[0], result.returncode)
    return result


def output_tail(result: subprocess.CompletedProcess, limit: int = 5) -> str:
    """Return the last non-empty output lines for error hints."""
    text = "\n".join(part for part in (result.stdout, result.stderr) if part)
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return " | ".join(lines[-limit:])


__all__ = ["output_tail", "run_tool"]
