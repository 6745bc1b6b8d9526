# SPDX-License-Identifier: MIT
"""
Central redaction utilities for reconsecrets.

Findings keep the full secret value; anything written to logs or handed to
an output surface goes through these helpers first.
"""

from __future__ import annotations
import re

_CANDIDATE_TOKEN = re.compile(r"[A-Za-z0-9+/_=.-]{16,}")


def redact_secret(secret: str) -> str:
    """
    Redact secret showing first 6 + last 4 characters.

    For secrets <= 10 characters, shows only ****.
    For secrets > 10 characters, shows first6****last4.

    Args:
        secret: The secret string to redact

    Returns:
        Redacted string
    """
    if len(secret) <= 10:
        return "****"
    return secret[:6] + "****" + secret[-4:]


def redact_evidence_string(evidence: str, max_length: int = 200) -> str:
    """
    Redact every secret-looking run in free text such as a raw output line.

    Args:
        evidence: Text that may contain secrets
        max_length: Truncate the result to this many characters (0 = no limit)

    Returns:
        Text with long token-like runs redacted
    """
    redacted = "\n".join(
        _CANDIDATE_TOKEN.sub(lambda m: redact_secret(m.group(0)), line)
        for line in evidence.split("\n")
    )
    if max_length and len(redacted) > max_length:
        redacted = redacted[:max_length] + "..."
    return redacted
