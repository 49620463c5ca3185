"""prefixlink: Transitive export/import resolution for prefix-installed packages."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
