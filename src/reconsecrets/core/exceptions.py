# SPDX-License-Identifier: MIT
"""reconsecrets exception taxonomy."""

from __future__ import annotations

from typing import Optional


class ConfigError(Exception):
    """Raised when configuration is missing or invalid, or a built-in pattern is broken."""

    def __init__(self, message: str, config_path: str = None, section: str = None):
        self.config_path = config_path
        self.section = section
        super().__init__(message)

    def __str__(self):
        msg = super().__str__()
        if self.config_path:
            msg += f" (config: {self.config_path})"
        if self.section:
            msg += f" (section: {self.section})"
        return msg


class PatternLoadWarning(Exception):
    """A custom or catalog pattern could not be loaded and is skipped."""

    def __init__(self, rule_id: Optional[str], reason: str):
        self.rule_id = rule_id or "<unnamed>"
        self.reason = reason
        super().__init__(f"pattern {self.rule_id}: {reason}")


class RecordParseWarning(Exception):
    """A single line of external tool output could not be decoded."""

    def __init__(self, output_line: int, reason: str):
        self.output_line = output_line
        self.reason = reason
        super().__init__(f"output line {output_line}: {reason}")


class ScanError(Exception):
    """Base class for detection engine failures."""


class ExternalToolError(ScanError):
    """The external scanning tool could not be run or its output read."""


class SubprocessTimeout(ExternalToolError):
    """The external tool did not finish before its deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"external tool scan timed out after {timeout_seconds} seconds")


class SubprocessFailure(ExternalToolError):
    """The external tool exited with a non-zero status."""

    def __init__(self, returncode: int, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"external tool exited with status {returncode}")


class PersistenceError(Exception):
    """Storing findings failed; the findings themselves are still valid."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
