# SPDX-License-Identifier: MIT
"""
Subprocess execution with a hard deadline.

The child runs in its own session so that on timeout the whole process group
is killed, including any helpers the tool spawned itself.
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from reconsecrets.core.exceptions import ExternalToolError, SubprocessFailure, SubprocessTimeout

logger = logging.getLogger(__name__)

_POSIX = sys.platform != "win32"


@dataclass(frozen=True)
class ProcessResult:
    """Captured outcome of a finished process."""

    args: Tuple[str, ...]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def failure(self) -> Optional[SubprocessFailure]:
        """A :class:`SubprocessFailure` for non-zero exits, else ``None``."""
        if self.returncode == 0:
            return None
        return SubprocessFailure(self.returncode, self.stderr.decode("utf-8", errors="replace"))

    def lines(self) -> Iterator[Tuple[int, bytes]]:
        """Yield ``(output_line, line)`` for every non-blank stdout line, 1-based."""
        for number, line in enumerate(self.stdout.splitlines(), start=1):
            if line.strip():
                yield number, line


class ProcessRunner:
    """Runs a command to completion or kills it at the deadline."""

    def run(self, args: Sequence[str], timeout: Optional[float]) -> ProcessResult:
        """
        Run *args* and capture its output.

        Args:
            args: Program and arguments, no shell involved
            timeout: Seconds before the process group is killed (None waits forever)

        Returns:
            ProcessResult, whatever the exit status

        Raises:
            SubprocessTimeout: If the deadline expired; partial output is discarded
            ExternalToolError: If the program could not be started
        """
        args = tuple(str(a) for a in args)
        try:
            proc = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as e:
            raise ExternalToolError(f"failed to start {args[0]}: {e}") from e

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            self._terminate(proc)
            raise SubprocessTimeout(timeout)
        except BaseException:
            self._terminate(proc)
            raise

        return ProcessResult(args=args, returncode=proc.returncode, stdout=stdout, stderr=stderr)

    @staticmethod
    def _terminate(proc: subprocess.Popen) -> None:
        """Kill the process and its group, then reap it so no zombie is left."""
        if _POSIX:
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            except PermissionError as e:
                logger.warning("Could not kill process group %d: %s", proc.pid, e)
                proc.kill()
        else:
            proc.kill()
        proc.communicate()
