# SPDX-License-Identifier: MIT
"""
Pattern registry for the regex secret detector.

Rules come from three layered sources, always in this order:

1. the built-in defaults (:data:`DEFAULT_PATTERNS`)
2. an optional user supplied YAML/JSON file
3. the bundled extended catalog, read through an :class:`AssetProvider`

Sources are concatenated. Two sources may define the same ``rule_id``; both
rules are kept.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from reconsecrets.core.exceptions import ConfigError, PatternLoadWarning
from reconsecrets.core.findings import Severity
from .defaults import DEFAULT_PATTERNS

logger = logging.getLogger(__name__)

CATALOG_ASSET = "catalog.yaml"


@dataclass(frozen=True)
class RegexPattern:
    """A compiled detection rule. Read-only once loaded."""

    rule_id: str
    description: str
    pattern: str
    compiled: re.Pattern
    severity: Severity
    keywords: Tuple[str, ...] = ()  # informational, never used for matching
    entropy: float = 0.0  # minimum Shannon entropy, 0 disables
    max_finds: int = 0  # per-scan cap, 0 is unbounded
    line_length: int = 0  # skip longer lines, 0 is unbounded


class PatternRecord(BaseModel):
    """Schema of one pattern record in a custom file or the catalog."""

    model_config = ConfigDict(extra="ignore")

    rule_id: str = Field(min_length=1)
    description: str = ""
    pattern: str = Field(min_length=1)
    severity: Severity = Severity.MEDIUM
    keywords: List[str] = Field(default_factory=list)
    entropy: float = Field(default=0.0, ge=0)
    max_finds: int = Field(default=0, ge=0)
    line_length: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # ``key:`` with no value in YAML means "use the default"
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> Severity:
        return Severity.parse(value)

    def compile(self) -> RegexPattern:
        """Compile the regex; raises :class:`PatternLoadWarning` when it is invalid."""
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise PatternLoadWarning(self.rule_id, f"invalid regex: {e}") from e
        return RegexPattern(
            rule_id=self.rule_id,
            description=self.description,
            pattern=self.pattern,
            compiled=compiled,
            severity=self.severity,
            keywords=tuple(self.keywords),
            entropy=self.entropy,
            max_finds=self.max_finds,
            line_length=self.line_length,
        )


class AssetProvider(Protocol):
    """Source of files bundled with the build."""

    def read_asset(self, name: str) -> bytes:
        """Return the asset contents; raise FileNotFoundError if it is absent."""
        ...


class PackageAssetProvider:
    """Reads assets shipped as package data next to this module."""

    def __init__(self, package: str = __package__):
        self.package = package

    def read_asset(self, name: str) -> bytes:
        return resources.files(self.package).joinpath(name).read_bytes()


class StaticAssetProvider:
    """In-memory assets, handy for embedding and tests."""

    def __init__(self, assets: Optional[Mapping[str, bytes]] = None):
        self._assets = dict(assets or {})

    def read_asset(self, name: str) -> bytes:
        try:
            return self._assets[name]
        except KeyError:
            raise FileNotFoundError(name) from None


def compile_builtin_patterns(records: Sequence[Dict[str, Any]]) -> List[RegexPattern]:
    """
    Validate and compile built-in rules.

    Raises:
        ConfigError: If any rule is malformed or fails to compile
    """
    compiled = []
    for raw in records:
        try:
            compiled.append(PatternRecord.model_validate(raw).compile())
        except (ValidationError, PatternLoadWarning) as e:
            raise ConfigError(
                f"Built-in pattern {raw.get('rule_id', '<unnamed>')} is invalid: {e}",
                section="builtin_patterns",
            ) from e
    return compiled


def _compile_records(records: Any, origin: str) -> List[RegexPattern]:
    """Compile user or catalog records, skipping the ones that are unusable."""
    if isinstance(records, dict):
        if records.get("patterns") is None:
            logger.warning("Pattern source %s has no 'patterns' list, no patterns loaded", origin)
            return []
        records = records["patterns"]
    if not isinstance(records, list):
        logger.error("Pattern source %s must contain a list of patterns, got %s", origin, type(records).__name__)
        return []

    valid = []
    for index, raw in enumerate(records):
        rule_id = raw.get("rule_id") if isinstance(raw, dict) else None
        try:
            valid.append(PatternRecord.model_validate(raw).compile())
        except ValidationError as e:
            problem = PatternLoadWarning(rule_id or f"#{index}", f"schema violation: {e.error_count()} error(s): {e.errors()[0]['msg']}")
            logger.warning("Skipping pattern from %s: %s", origin, problem)
        except PatternLoadWarning as e:
            logger.warning("Skipping pattern from %s: %s", origin, e)

    logger.debug("Loaded %d of %d patterns from %s", len(valid), len(records), origin)
    return valid


def load_custom_patterns(file_path: str) -> List[RegexPattern]:
    """
    Load regex patterns from a user supplied YAML (or JSON) file.

    The file is either a list of pattern records or a mapping with a
    ``patterns`` list. An unreadable or unparsable file contributes no
    patterns; it never aborts registry construction.

    Args:
        file_path: Path to the pattern file

    Returns:
        Compiled patterns that passed validation
    """
    path = Path(file_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load custom regex patterns from %s: %s", path, e)
        return []

    if data is None:
        return []
    return _compile_records(data, str(path))


def load_catalog_patterns(provider: AssetProvider, name: str = CATALOG_ASSET) -> List[RegexPattern]:
    """Load the bundled extended catalog through *provider*."""
    try:
        data = yaml.safe_load(provider.read_asset(name))
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load pattern catalog %s: %s", name, e)
        return []

    if data is None:
        return []
    return _compile_records(data, f"catalog:{name}")


class PatternRegistry:
    """Ordered, compiled rule set shared by every scan."""

    def __init__(
        self,
        custom_patterns_file: Optional[str] = None,
        asset_provider: Optional[AssetProvider] = None,
        defaults: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> None:
        patterns = compile_builtin_patterns(DEFAULT_PATTERNS if defaults is None else defaults)
        logger.debug("Loaded %d built-in regex patterns", len(patterns))

        if custom_patterns_file:
            patterns.extend(load_custom_patterns(custom_patterns_file))

        provider = asset_provider if asset_provider is not None else PackageAssetProvider()
        patterns.extend(load_catalog_patterns(provider))

        self._patterns: Tuple[RegexPattern, ...] = tuple(patterns)
        logger.debug("Pattern registry initialised with %d patterns", len(self._patterns))

    def patterns(self) -> List[RegexPattern]:
        """Return the patterns in load order."""
        return list(self._patterns)

    def rule_ids(self) -> List[str]:
        return [p.rule_id for p in self._patterns]

    def __iter__(self) -> Iterator[RegexPattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)
