# SPDX-License-Identifier: MIT
"""
Persistence collaborator for secret findings.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import List, Protocol, Sequence, Set, Tuple

from reconsecrets.core.findings import SecretFinding

logger = logging.getLogger(__name__)


class SecretsStore(Protocol):
    """Anything that can persist findings. Must be safe for concurrent use."""

    def store_secret_findings(self, findings: Sequence[SecretFinding]) -> None:
        """Persist *findings*; raise on failure."""
        ...


class JsonlSecretsStore:
    """
    Append-only JSON-lines store.

    A finding whose ``(source_url, secret_text)`` pair is already on disk is
    not written again. Writes are serialised with a lock.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def store_secret_findings(self, findings: Sequence[SecretFinding]) -> None:
        if not findings:
            return

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            seen = self._stored_keys()

            fresh = []
            for finding in findings:
                key = (finding.source_url, finding.secret_text)
                if key in seen:
                    continue
                seen.add(key)
                fresh.append(finding)

            if not fresh:
                logger.info("All %d secret findings already stored, skipping", len(findings))
                return

            with open(self.path, "a", encoding="utf-8") as f:
                for finding in fresh:
                    f.write(json.dumps(finding.to_dict(), sort_keys=True) + "\n")

            logger.debug("Stored %d secret findings in %s", len(fresh), self.path)

    def load(self) -> List[SecretFinding]:
        """Read back every stored finding."""
        with self._lock:
            return list(self._iter_stored())

    def _stored_keys(self) -> Set[Tuple[str, str]]:
        return {(f.source_url, f.secret_text) for f in self._iter_stored()}

    def _iter_stored(self):
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    yield SecretFinding.from_dict(json.loads(line))
                except (ValueError, KeyError) as e:
                    logger.warning("Ignoring unreadable record %s:%d: %s", self.path, number, e)
