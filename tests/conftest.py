"""Shared fixtures: a small scan result covering every match shape."""

import copy
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from scanaudit.core.store import ScanDataStore

SCAN_DOCUMENT = {
    "README.md": [
        {
            "id": "snippet",
            "file": "docs/README.md",
            "purl": ["pkg:github/acme/libutil@v1.2.0"],
            "licenses": [],
            "oss_lines": "5",
        }
    ],
    "docs/guide.md": [{"id": "none"}],
    "src/net/http.c": [{"id": "none", "server": {"version": "5.4.0"}}],
    "src/net/socket.c": [
        {
            "id": "snippet",
            "file": "net/socket.c",
            "file_url": "https://api.example.com/file_contents/3f2a",
            "purl": ["pkg:github/acme/netkit"],
            "licenses": [{"name": "Apache-2.0"}, {"name": "MIT"}],
            "oss_lines": "10-12,40",
            "component": "netkit",
        }
    ],
    "src/util.c": [
        {
            "id": "file",
            "file": "lib/src/util.c",
            "file_url": "https://api.example.com/file_contents/9c1e",
            "purl": ["pkg:github/acme/libutil@v1.2.0"],
            "licenses": [{"name": "MIT", "source": "component_declared"}],
            "oss_lines": "all",
            "component": "libutil",
            "version": "1.2.0",
        }
    ],
    "vendor/zlib/inflate.c": [
        {"id": "none"},
        {
            "id": "file",
            "file": "inflate.c",
            "purl": ["pkg:npm/zlib", "pkg:github/madler/zlib"],
            "licenses": [{"name": "Zlib"}],
            "audit": [
                {
                    "decision": "identified",
                    "assessment": "vendored",
                    "timestamp": "2025-01-02T03:04:05.123456789Z",
                }
            ],
        },
    ],
}


@pytest.fixture
def scan_document():
    """Fresh copy of the sample scan result."""
    return copy.deepcopy(SCAN_DOCUMENT)


@pytest.fixture
def scan_file(tmp_path, scan_document):
    """Sample scan result written to disk."""
    path = tmp_path / "results.json"
    path.write_text(json.dumps(scan_document, indent=2))
    return path


@pytest.fixture
def store(scan_file):
    """ScanDataStore loaded from the sample scan result."""
    return ScanDataStore.load(scan_file)


@pytest.fixture
def make_store(tmp_path):
    """Factory writing a scan document to disk and loading it."""

    def _make(document, name="scan.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return ScanDataStore.load(path)

    return _make


def mock_session_returning(payload=None, status=200, error=None, text=""):
    """aiohttp session mock whose GET returns ``payload``/``text`` (or raises ``error``)."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=payload)
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = MagicMock()
    if error is not None:
        mock_session.get = MagicMock(side_effect=error)
    else:
        mock_session.get = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


@pytest.fixture
def mock_session():
    """Factory for mocked aiohttp sessions."""
    return mock_session_returning
