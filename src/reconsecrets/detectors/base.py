from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Union

from reconsecrets.core.findings import SecretFinding

Content = Union[bytes, str]


def as_bytes(content: Content) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return content or b""


class SecretDetector(ABC):
    """Base class for detection engines."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Engine name, also used as ``SecretFinding.tool_name``."""

    @abstractmethod
    def scan(self, content: Content, source_url: str) -> List[SecretFinding]:
        """Inspect *content* and return findings; raise ``ScanError`` on engine failure."""
