# SPDX-License-Identifier: MIT
"""
Severity classification for findings from the external scanning tool.

The tool reports no severity of its own, so a tier is inferred from its
verification flag and detector/rule names.
"""

from .severity import classify_external_severity

__all__ = ["classify_external_severity"]
