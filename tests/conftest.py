# SPDX-License-Identifier: MIT
import stat

import pytest


@pytest.fixture
def fake_tool(tmp_path):
    """Write an executable /bin/sh script and return its path."""

    def _write(body: str, name: str = "fake_tool.sh") -> str:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _write
