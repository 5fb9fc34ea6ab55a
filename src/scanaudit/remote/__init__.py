"""Remote access to the scanning service.

Provides:
- Authenticated fetch of matched file contents with line highlighting
"""

from .content import (
    ContentLine,
    ContentView,
    fetch_file_content,
    is_valid_file_url,
    load_match_content,
    scan_has_content_urls,
)

__all__ = [
    "ContentLine",
    "ContentView",
    "fetch_file_content",
    "is_valid_file_url",
    "load_match_content",
    "scan_has_content_urls",
]
