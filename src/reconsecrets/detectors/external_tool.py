# SPDX-License-Identifier: MIT
"""
Adapter for an external, verification-capable secret scanner (TruffleHog v3 CLI).

Content is written to a scratch file, the tool is run as
``<binary> filesystem <scratch-file> --json [--no-verification]`` and its
newline-delimited JSON output is mapped onto :class:`SecretFinding`.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reconsecrets.classify import classify_external_severity
from reconsecrets.core.exceptions import ExternalToolError, RecordParseWarning
from reconsecrets.core.findings import SecretFinding, VerificationState
from reconsecrets.core.process import ProcessResult, ProcessRunner
from reconsecrets.core.redaction import redact_evidence_string
from .base import Content, SecretDetector, as_bytes

logger = logging.getLogger(__name__)

TOOL_NAME = "TruffleHog"
SCRATCH_PREFIX = "trufflehog_scan_"


class _Location(BaseModel):
    model_config = ConfigDict(extra="ignore")

    line: Optional[int] = 0


class _SourceData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    git: Optional[_Location] = Field(default=None, alias="Git")
    filesystem: Optional[_Location] = Field(default=None, alias="Filesystem")
    file: Optional[_Location] = Field(default=None, alias="File")

    def line(self) -> int:
        """Line reported by the filesystem location, falling back to git."""
        for location in (self.filesystem, self.file, self.git):
            if location is not None and location.line:
                return location.line
        return 0


class _SourceMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: _SourceData = Field(default_factory=_SourceData, alias="Data")


class ToolRecord(BaseModel):
    """One JSONL record emitted by the external tool."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source_metadata: _SourceMetadata = Field(default_factory=_SourceMetadata, alias="SourceMetadata")
    detector_name: str = Field(alias="DetectorName")
    rule_name: Optional[str] = Field(default="", alias="RuleName")
    verified: bool = Field(default=False, alias="Verified")
    raw: str = Field(default="", alias="Raw")
    extra_data: Any = Field(default=None, alias="ExtraData")  # opaque, serialised as-is


def parse_tool_output(result: ProcessResult) -> List[ToolRecord]:
    """Decode every stdout line, skipping (and logging) malformed records."""
    records = []
    for output_line, line in result.lines():
        try:
            records.append(ToolRecord.model_validate_json(line))
        except ValidationError as e:
            problem = RecordParseWarning(output_line, f"{e.error_count()} error(s): {e.errors()[0]['msg']}")
            logger.warning(
                "Skipping external tool record: %s; content: %s",
                problem,
                redact_evidence_string(line.decode("utf-8", errors="replace")),
            )
    return records


class ExternalToolDetector(SecretDetector):
    """Runs the external scanner once per call; stateless between calls."""

    def __init__(
        self,
        tool_path: str = "trufflehog",
        timeout_seconds: float = 60,
        no_verification: bool = True,
        runner: Optional[ProcessRunner] = None,
        scratch_dir: Optional[str] = None,
    ) -> None:
        self.tool_path = tool_path
        self.timeout_seconds = timeout_seconds
        self.no_verification = no_verification
        self.scratch_dir = scratch_dir
        self._runner = runner or ProcessRunner()

    @classmethod
    def from_config(cls, config, runner: Optional[ProcessRunner] = None) -> "ExternalToolDetector":
        return cls(
            tool_path=config.external_tool_path,
            timeout_seconds=config.external_tool_timeout_seconds,
            no_verification=config.external_tool_no_verification,
            runner=runner,
        )

    @property
    def name(self) -> str:
        return TOOL_NAME

    def build_command(self, scratch_path: str) -> List[str]:
        cmd = [self.tool_path, "filesystem", scratch_path, "--json"]
        if self.no_verification:
            cmd.append("--no-verification")
        return cmd

    def scan(self, content: Content, source_url: str) -> List[SecretFinding]:
        """
        Scan *content* with the external tool.

        Raises:
            SubprocessTimeout: The tool exceeded its deadline; nothing is returned
            ExternalToolError: The tool is not configured or could not be run
        """
        if not self.tool_path:
            raise ExternalToolError("external tool path is not configured")

        data = as_bytes(content)
        if not data:
            return []

        scratch_path = self._write_scratch_file(data)
        try:
            cmd = self.build_command(scratch_path)
            logger.debug("Executing external tool: %s", " ".join(cmd))
            timeout = self.timeout_seconds if self.timeout_seconds and self.timeout_seconds > 0 else None
            result = self._runner.run(cmd, timeout=timeout)

            failure = result.failure
            if failure is not None:
                # Findings printed before a late failure are still usable
                logger.warning(
                    "External tool failed for %s, still parsing stdout: %s; stderr: %s",
                    source_url,
                    failure,
                    redact_evidence_string(failure.stderr.strip(), max_length=500),
                )

            findings = [self._to_finding(record, source_url, scratch_path) for record in parse_tool_output(result)]
        finally:
            self._remove_scratch_file(scratch_path)

        logger.debug("External tool scan of %s complete: %d findings", source_url, len(findings))
        return findings

    def _write_scratch_file(self, data: bytes) -> str:
        try:
            with tempfile.NamedTemporaryFile(
                prefix=SCRATCH_PREFIX, suffix=".tmp", dir=self.scratch_dir, delete=False
            ) as tmp:
                scratch_path = tmp.name
                try:
                    tmp.write(data)
                except OSError:
                    tmp.close()
                    self._remove_scratch_file(scratch_path)
                    raise
        except OSError as e:
            raise ExternalToolError(f"failed to write scratch file for external tool: {e}") from e
        return scratch_path

    @staticmethod
    def _remove_scratch_file(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove scratch file %s: %s", path, e)

    @staticmethod
    def _to_finding(record: ToolRecord, source_url: str, scratch_path: str) -> SecretFinding:
        rule_name = record.rule_name or ""
        extra_data = None
        if record.extra_data is not None:
            extra_data = json.dumps(record.extra_data, sort_keys=True, default=str)

        return SecretFinding(
            source_url=source_url,
            rule_id=record.detector_name,
            description=f"{TOOL_NAME}: {record.detector_name} (Rule: {rule_name})",
            severity=classify_external_severity(record.verified, record.detector_name, rule_name),
            secret_text=record.raw,
            line_number=record.source_metadata.data.line(),
            tool_name=TOOL_NAME,
            verification_state=VerificationState.VERIFIED if record.verified else VerificationState.UNVERIFIED,
            timestamp=datetime.now(timezone.utc),
            extra_data=extra_data,
            scratch_path=scratch_path,
        )
