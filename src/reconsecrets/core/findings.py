"""Finding data structures for reconsecrets."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from reconsecrets.core.redaction import redact_secret


class Severity(Enum):
    """Coarse risk tiers, highest first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Accept an enum member or a case-insensitive tier name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"unknown severity: {value!r}") from None

    @property
    def is_high(self) -> bool:
        return self in (Severity.CRITICAL, Severity.HIGH)


class VerificationState(Enum):
    """Whether a credential was confirmed live by the detecting tool."""

    VERIFIED = "Verified"
    UNVERIFIED = "Unverified"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SecretFinding:
    """One suspected secret detected at a specific source and line.

    ``secret_text`` holds the full matched value. Use :meth:`to_dict` with
    ``redact=True`` for anything that leaves the process.

    Equality and hashing use only the dedup key fields.
    """

    source_url: str
    rule_id: str
    description: str = field(compare=False)
    severity: Severity = field(compare=False)
    secret_text: str
    line_number: int
    tool_name: str = field(compare=False)
    verification_state: VerificationState = field(default=VerificationState.UNVERIFIED, compare=False)
    timestamp: datetime = field(default_factory=_utcnow, compare=False)
    extra_data: Optional[str] = field(default=None, compare=False)  # JSON-encoded tool metadata
    scratch_path: Optional[str] = field(default=None, compare=False)

    def dedup_key(self) -> Tuple[str, str, int, str]:
        """Identity used for deduplication and ordering."""
        return (self.source_url, self.rule_id, self.line_number, self.secret_text)

    @property
    def verified(self) -> bool:
        return self.verification_state is VerificationState.VERIFIED

    def to_dict(self, redact: bool = False) -> Dict[str, Any]:
        """Convert the finding to a JSON-friendly dictionary."""
        result = {
            "source_url": self.source_url,
            "rule_id": self.rule_id,
            "description": self.description,
            "severity": self.severity.value,
            "secret_text": redact_secret(self.secret_text) if redact else self.secret_text,
            "line_number": self.line_number,
            "timestamp": self.timestamp.isoformat(),
            "tool_name": self.tool_name,
            "verification_state": self.verification_state.value,
        }

        if self.extra_data:
            result["extra_data"] = self.extra_data

        if self.scratch_path:
            result["scratch_path"] = self.scratch_path

        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretFinding":
        """Rebuild a finding from :meth:`to_dict` output (unredacted)."""
        timestamp = data.get("timestamp")
        return cls(
            source_url=data["source_url"],
            rule_id=data["rule_id"],
            description=data.get("description", ""),
            severity=Severity.parse(data.get("severity", "INFO")),
            secret_text=data["secret_text"],
            line_number=int(data.get("line_number", 0)),
            tool_name=data.get("tool_name", ""),
            verification_state=VerificationState(
                data.get("verification_state", VerificationState.UNVERIFIED.value)
            ),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else _utcnow(),
            extra_data=data.get("extra_data"),
            scratch_path=data.get("scratch_path"),
        )
