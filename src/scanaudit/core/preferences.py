"""User preferences and credential handling.

Preferences are plain string key/value pairs behind a small store protocol so
the audit core never depends on an on-disk format. The file-backed store
writes a simple ``key=value`` document readable only by its owner.

Provides:
- PreferenceStore: Protocol for get/set preference access
- InMemoryPreferenceStore: Dict-backed store (tests, ephemeral sessions)
- FilePreferenceStore: ``key=value`` file store (mode 0600)
- Preferences: Typed accessors over a PreferenceStore
- validate_api_key: Minimum-length API key check
- mask_api_key: Display-safe rendering of an API key
- CredentialPrompt: Protocol for interactive key entry
- resolve_api_key: Stored key, or prompt and persist
"""

import os
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

API_KEY = "api_key"
PANE_WIDTH = "pane_width"
HIDE_DECIDED = "hide_decided"
VIEW_FILTER = "view_filter"

DEFAULT_PANE_WIDTH = 0.5
MIN_PANE_WIDTH = 0.2
MAX_PANE_WIDTH = 0.8

MIN_API_KEY_LENGTH = 10


class PreferenceStore(Protocol):
    """Key/value preference access."""

    def get(self, key: str, default: str | None = None) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryPreferenceStore:
    """Preference store that never touches disk."""

    def __init__(self, values: dict[str, str] | None = None):
        self.values = dict(values or {})

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class FilePreferenceStore:
    """Preference file with one ``key=value`` pair per line.

    Lines starting with ``#`` or ``;`` and blank lines are ignored. The file
    is read lazily on first access and rewritten in full on every ``set``.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._values: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values

        values: dict[str, str] = {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            text = ""
        except OSError as e:
            logger.warning("preferences_unreadable", path=str(self.path), error=str(e))
            text = ""

        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith(("#", ";")):
                continue
            key, sep, value = line.partition("=")
            if not sep:
                continue
            values[key.strip()] = value.strip()

        self._values = values
        return values

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._load().get(key, default)

    def set(self, key: str, value: str) -> None:
        """Store a value and rewrite the file.

        Raises:
            OSError: Preference file could not be written
        """
        values = self._load()
        values[key] = value

        content = "# scanaudit preferences\n" + "".join(
            f"{k}={v}\n" for k, v in sorted(values.items())
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(self.path, 0o600)


class Preferences:
    """Typed accessors over a preference store."""

    def __init__(self, store: PreferenceStore):
        self.store = store

    @property
    def api_key(self) -> str:
        return self.store.get(API_KEY, "") or ""

    @api_key.setter
    def api_key(self, value: str) -> None:
        self.store.set(API_KEY, value.strip())

    @property
    def pane_width(self) -> float:
        """Left pane width ratio, clamped to [0.2, 0.8]."""
        raw = self.store.get(PANE_WIDTH)
        try:
            width = float(raw) if raw is not None else DEFAULT_PANE_WIDTH
        except ValueError:
            return DEFAULT_PANE_WIDTH
        return min(max(width, MIN_PANE_WIDTH), MAX_PANE_WIDTH)

    @pane_width.setter
    def pane_width(self, value: float) -> None:
        value = min(max(value, MIN_PANE_WIDTH), MAX_PANE_WIDTH)
        self.store.set(PANE_WIDTH, f"{value:.2f}")

    @property
    def hide_decided(self) -> bool:
        return (self.store.get(HIDE_DECIDED, "") or "").strip().lower() == "true"

    @hide_decided.setter
    def hide_decided(self, value: bool) -> None:
        self.store.set(HIDE_DECIDED, "true" if value else "false")

    @property
    def view_filter(self) -> str | None:
        return self.store.get(VIEW_FILTER)

    @view_filter.setter
    def view_filter(self, value: str) -> None:
        self.store.set(VIEW_FILTER, value)


def validate_api_key(key: str) -> bool:
    """Check an API key has at least the minimum length after trimming."""
    return len(key.strip()) >= MIN_API_KEY_LENGTH


def mask_api_key(key: str) -> str:
    """Render an API key showing only its first and last four characters.

    Example:
        >>> mask_api_key("abcd1234efgh5678")
        'abcd...5678'
    """
    key = key.strip()
    if not key:
        return "not configured"
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


class CredentialPrompt(Protocol):
    """Interactive API key entry. Returns None when the user skips."""

    def __call__(self) -> str | None: ...


def resolve_api_key(preferences: Preferences, prompt: CredentialPrompt | None = None) -> str:
    """Return the stored API key, prompting for one if none is stored.

    A prompted key is validated and persisted. A persistence failure is
    logged and the key is still returned for the current session.

    Args:
        preferences: Preference accessors
        prompt: Optional credential prompt

    Returns:
        API key, or "" for metadata-only mode
    """
    stored = preferences.api_key
    if stored:
        return stored
    if prompt is None:
        return ""

    entered = prompt()
    if entered is None:
        logger.info("api_key_prompt_skipped")
        return ""

    entered = entered.strip()
    if not validate_api_key(entered):
        logger.warning("api_key_rejected", reason="too short")
        return ""

    try:
        preferences.api_key = entered
    except OSError as e:
        logger.warning("api_key_save_failed", error=str(e))
    return entered
