"""Shared fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def zlib_exports(write_yaml) -> Path:
    """Exports of a typical library: one of each scope."""
    return write_yaml("zlib-exports.yaml", [
        {"kind": "shared-library", "value": "lib/libz.so", "scope": "public"},
        {"kind": "header-dir", "value": "include", "scope": "public"},
        {"kind": "compile-flag", "value": "-DZ_INTERNAL", "scope": "private"},
        {"kind": "link-flag", "value": "-Wl,--as-needed", "scope": "interface"},
    ])
