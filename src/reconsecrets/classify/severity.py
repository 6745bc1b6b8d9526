# SPDX-License-Identifier: MIT
"""
Name-based severity heuristic for external tool findings.

Best effort only: checks are case-insensitive substring tests against the
detector and rule names, evaluated in order, first hit wins.
"""
from __future__ import annotations

from typing import Iterable

from reconsecrets.core.findings import Severity

PRIVATE_KEY_MARKERS = ("privatekey", "pkcs")
MAJOR_CLOUD_MARKERS = ("aws", "gcp", "azure", "github")

# Personal-access-token style credentials are critical even unverified
ACCESS_TOKEN_MARKERS = ("github_pat", "github_app_token")

# (detector-name markers, rule-name markers)
SERVICE_CREDENTIAL_MARKERS = (
    ("aws", "gcp", "azure", "slack", "stripe", "jwt", "bearer", "secret_key"),
    ("aws_access_key", "google_api_key", "slack_token", "stripe_api_key", "json_web_token", "api_key"),
)

GENERIC_CREDENTIAL_MARKERS = ("password", "token")


def _contains_any(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def classify_external_severity(verified: bool, detector_name: str, rule_name: str = "") -> Severity:
    """
    Map an external finding to a severity tier.

    Args:
        verified: Whether the tool confirmed the credential is live
        detector_name: The tool's detector name (e.g. "AWS", "PrivateKey")
        rule_name: Optional finer-grained rule name

    Returns:
        Severity tier
    """
    detector = (detector_name or "").lower()
    rule = (rule_name or "").lower()
    names = (detector, rule)

    def either(markers: Iterable[str]) -> bool:
        markers = tuple(markers)
        return any(_contains_any(name, markers) for name in names)

    if verified:
        if either(PRIVATE_KEY_MARKERS):
            return Severity.CRITICAL
        if _contains_any(detector, MAJOR_CLOUD_MARKERS) or "github" in rule:
            return Severity.CRITICAL
        return Severity.HIGH

    if either(PRIVATE_KEY_MARKERS) or either(ACCESS_TOKEN_MARKERS):
        return Severity.CRITICAL

    detector_markers, rule_markers = SERVICE_CREDENTIAL_MARKERS
    if _contains_any(detector, detector_markers) or _contains_any(rule, rule_markers):
        return Severity.HIGH

    if "generic" in detector:
        return Severity.MEDIUM
    if _contains_any(detector, GENERIC_CREDENTIAL_MARKERS) and "example" not in rule:
        return Severity.MEDIUM

    return Severity.LOW
