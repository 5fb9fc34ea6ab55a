"""scanaudit - audit workflow for open-source provenance scan results."""

__version__ = "0.1.0"
