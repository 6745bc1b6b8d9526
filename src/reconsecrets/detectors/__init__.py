"""Detection engines."""

from .base import SecretDetector
from .external_tool import ExternalToolDetector
from .regex_scanner import RegexSecretDetector

__all__ = ["SecretDetector", "ExternalToolDetector", "RegexSecretDetector"]
