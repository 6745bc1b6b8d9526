# SPDX-License-Identifier: MIT
"""
Secret detection service.

Top-level entry point: gates content by size, runs the external tool and the
regex engine independently, merges and deduplicates their findings, persists
them and triggers high-severity notifications.
"""
from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Iterable, List, Optional, Tuple

from reconsecrets.config import SecretsConfig, get_default_secrets_config
from reconsecrets.core.exceptions import ConfigError, PersistenceError, ScanError
from reconsecrets.core.findings import SecretFinding
from reconsecrets.detectors.base import Content, SecretDetector, as_bytes
from reconsecrets.detectors.external_tool import ExternalToolDetector
from reconsecrets.detectors.regex_scanner import RegexSecretDetector
from reconsecrets.notify import (
    NOTIFICATION_TIMEOUT_SECONDS,
    NotificationChannel,
    SecretNotifier,
    dispatch_notification,
)
from reconsecrets.patterns import AssetProvider, PatternRegistry
from reconsecrets.store import SecretsStore

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


def deduplicate_findings(findings: Iterable[SecretFinding]) -> List[SecretFinding]:
    """
    Drop repeated findings.

    Findings are stable-sorted by (source_url, rule_id, line_number,
    secret_text), so the result does not depend on engine order, and only the
    first occurrence of each key is kept.
    """
    ordered = sorted(findings, key=SecretFinding.dedup_key)
    seen = set()
    unique = []
    for finding in ordered:
        key = finding.dedup_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)
    return unique


class SecretDetectorService:
    """
    Orchestrates both detection engines for one piece of content at a time.

    Instances hold no per-scan state; ``scan_content`` may be called from
    many threads at once provided the store and notifier are thread-safe.
    """

    def __init__(
        self,
        config: Optional[SecretsConfig] = None,
        store: Optional[SecretsStore] = None,
        notifier: Optional[SecretNotifier] = None,
        regex_detector: Optional[SecretDetector] = None,
        external_detector: Optional[SecretDetector] = None,
        asset_provider: Optional[AssetProvider] = None,
        notification_channel: NotificationChannel = NotificationChannel.MONITOR_SERVICE,
        notification_timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
    ) -> None:
        self.config = config or get_default_secrets_config()
        self.store = store
        self.notifier = notifier
        self.notification_channel = notification_channel
        self.notification_timeout = notification_timeout

        if regex_detector is None and self.config.enable_custom_regex:
            regex_detector = self._build_regex_detector(asset_provider)
        self.regex_detector = regex_detector

        if external_detector is None and self.config.enable_external_tool:
            external_detector = ExternalToolDetector.from_config(self.config)
        self.external_detector = external_detector

    def _build_regex_detector(self, asset_provider: Optional[AssetProvider]) -> Optional[RegexSecretDetector]:
        try:
            registry = PatternRegistry(
                custom_patterns_file=self.config.custom_regex_patterns_file or None,
                asset_provider=asset_provider,
            )
        except ConfigError as e:
            # The external tool can still run without the regex engine
            logger.error("Failed to initialise regex patterns, regex scanning disabled: %s", e)
            return None
        return RegexSecretDetector(registry)

    def scan_content(
        self, source_url: str, content: Content, content_type: str = ""
    ) -> Tuple[List[SecretFinding], Optional[PersistenceError]]:
        """
        Scan one piece of fetched content.

        Args:
            source_url: URL or identifier the content came from
            content: Raw content
            content_type: Content-type hint, informational only

        Returns:
            Tuple of (deduplicated findings, persistence error or None).
            Findings are returned even when storing them failed.
        """
        data = as_bytes(content)
        logger.debug(
            "Starting secret detection for %s (content_type=%s, %d bytes)", source_url, content_type, len(data)
        )

        if not self.config.enabled:
            logger.debug("Secret detection disabled, skipping %s", source_url)
            return [], None

        max_mb = self.config.max_file_size_to_scan_mb
        if max_mb > 0:
            size_mb = len(data) / BYTES_PER_MB
            if size_mb > max_mb:
                logger.warning(
                    "Content too large for secret scanning, skipping %s (%.2f MB > %s MB)",
                    source_url,
                    size_mb,
                    max_mb,
                )
                return [], None

        started = time.monotonic()
        all_findings: List[SecretFinding] = []

        if self.config.enable_external_tool and self.external_detector is not None:
            all_findings.extend(self._run_detector(self.external_detector, data, source_url))
        else:
            logger.debug("External tool detection disabled or unavailable for %s", source_url)

        if self.config.enable_custom_regex and self.regex_detector is not None:
            all_findings.extend(self._run_detector(self.regex_detector, data, source_url))
        else:
            logger.debug("Regex detection disabled or unavailable for %s", source_url)

        findings = deduplicate_findings(all_findings)
        logger.debug(
            "Deduplicated %d findings to %d for %s", len(all_findings), len(findings), source_url
        )

        error = None
        if findings and self.store is not None:
            try:
                self.store.store_secret_findings(findings)
            except Exception as e:  # any store failure is reported, never fatal
                logger.error("Failed to store secret findings for %s: %s", source_url, e)
                error = PersistenceError(f"failed to store secret findings: {e}", cause=e)
            else:
                logger.info("Stored %d secret findings for %s", len(findings), source_url)

        self._notify(findings)
        self._log_summary(source_url, findings, time.monotonic() - started)
        return findings, error

    @staticmethod
    def _run_detector(detector: SecretDetector, data: bytes, source_url: str) -> List[SecretFinding]:
        started = time.monotonic()
        try:
            findings = detector.scan(data, source_url)
        except ScanError as e:
            logger.error("%s scan failed for %s: %s", detector.name, source_url, e)
            return []
        except Exception as e:  # keep the other engine's results
            logger.exception("%s scan crashed for %s: %s", detector.name, source_url, e)
            return []
        logger.debug(
            "%s scan of %s completed in %.3fs with %d findings",
            detector.name,
            source_url,
            time.monotonic() - started,
            len(findings),
        )
        return findings

    def _notify(self, findings: List[SecretFinding]) -> None:
        if not self.config.notify_on_high_severity or self.notifier is None:
            return
        for finding in findings:
            if finding.severity.is_high:
                dispatch_notification(
                    self.notifier, finding, self.notification_channel, self.notification_timeout
                )

    @staticmethod
    def _log_summary(source_url: str, findings: List[SecretFinding], duration: float) -> None:
        if not findings:
            logger.info("Secret detection for %s completed with no findings in %.3fs", source_url, duration)
            return
        breakdown = Counter(f.severity.value for f in findings)
        high = sum(1 for f in findings if f.severity.is_high)
        logger.info(
            "Secret detection for %s completed: %d findings (%d high severity) %s in %.3fs",
            source_url,
            len(findings),
            high,
            dict(breakdown),
            duration,
        )
