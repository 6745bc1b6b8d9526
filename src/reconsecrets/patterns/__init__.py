# SPDX-License-Identifier: MIT
"""
Regex rule set: built-in defaults, custom pattern files and the bundled catalog.
"""

from .defaults import DEFAULT_PATTERNS
from .registry import (
    AssetProvider,
    PackageAssetProvider,
    PatternRecord,
    PatternRegistry,
    RegexPattern,
    StaticAssetProvider,
    load_catalog_patterns,
    load_custom_patterns,
)

__all__ = [
    "DEFAULT_PATTERNS",
    "AssetProvider",
    "PackageAssetProvider",
    "PatternRecord",
    "PatternRegistry",
    "RegexPattern",
    "StaticAssetProvider",
    "load_catalog_patterns",
    "load_custom_patterns",
]
