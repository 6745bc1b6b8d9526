# SPDX-License-Identifier: MIT
"""
Regex based secret detector.

Scans content line by line against every rule in a :class:`PatternRegistry`,
applying the per-rule line-length, entropy and find-count guards.
"""
from __future__ import annotations

import io
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Iterator, List, Tuple

from reconsecrets.core.entropy import shannon_entropy
from reconsecrets.core.findings import SecretFinding, VerificationState
from reconsecrets.patterns import PatternRegistry, RegexPattern
from .base import Content, SecretDetector, as_bytes

logger = logging.getLogger(__name__)

TOOL_NAME = "RegexScanner"


def iter_lines(data: bytes) -> Iterator[Tuple[int, int, str]]:
    """Yield ``(line_number, byte_length, text)``, 1-based, without line terminators.

    Lines are read without a length limit, so minified single-line bundles
    are scanned whole.
    """
    for number, raw in enumerate(io.BytesIO(data), start=1):
        raw = raw.rstrip(b"\r\n")
        yield number, len(raw), raw.decode("utf-8", errors="replace")
        yield number, len(raw), raw.decode("utf-8", errors="replace")


def extract_secret(match: re.Match) -> str:
    """First capturing group when it participated, otherwise the whole match."""
    if match.re.groups >= 1:
        group = match.group(1)
        if group:
            return group
    return match.group(0)


class RegexSecretDetector(SecretDetector):
    """Pattern engine. Holds no per-scan state, so one instance serves concurrent scans."""

    def __init__(self, registry: PatternRegistry) -> None:
        self._registry = registry
        self._patterns: Tuple[RegexPattern, ...] = tuple(registry)

    @property
    def name(self) -> str:
        return TOOL_NAME

    @property
    def registry(self) -> PatternRegistry:
        return self._registry

    def scan(self, content: Content, source_url: str) -> List[SecretFinding]:
        data = as_bytes(content)
        if not data:
            return []

        logger.debug(
            "Scanning %s (%d bytes) with %d regex patterns", source_url, len(data), len(self._patterns)
        )
        findings: List[SecretFinding] = []
        finds_per_rule: Counter = Counter()

        for line_number, line_bytes, line in iter_lines(data):
            for pattern in self._patterns:
                # Measured in bytes of the raw line
                if pattern.line_length and line_bytes > pattern.line_length:
                    continue
                if pattern.max_finds and finds_per_rule[pattern.rule_id] >= pattern.max_finds:
                    continue

                for match in pattern.compiled.finditer(line):
                    secret_text = extract_secret(match)

                    if pattern.entropy > 0 and shannon_entropy(secret_text) < pattern.entropy:
                        continue

                    findings.append(
                        SecretFinding(
                            source_url=source_url,
                            rule_id=pattern.rule_id,
                            description=pattern.description,
                            severity=pattern.severity,
                            secret_text=secret_text,
                            line_number=line_number,
                            tool_name=TOOL_NAME,
                            verification_state=VerificationState.UNVERIFIED,
                            timestamp=datetime.now(timezone.utc),
                        )
                    )
                    finds_per_rule[pattern.rule_id] += 1
                    if pattern.max_finds and finds_per_rule[pattern.rule_id] >= pattern.max_finds:
                        break

        if findings:
            logger.debug("Regex scanner found %d candidate secrets in %s", len(findings), source_url)
        return findings
