"""Tests for preference stores, typed accessors and API key handling."""

import os

import pytest

from scanaudit.core.preferences import (
    FilePreferenceStore,
    InMemoryPreferenceStore,
    Preferences,
    mask_api_key,
    resolve_api_key,
    validate_api_key,
)


def test_file_store_round_trip(tmp_path):
    path = tmp_path / "prefs"
    store = FilePreferenceStore(path)
    store.set("api_key", "abcdef123456")
    store.set("view_filter", "pending")

    reloaded = FilePreferenceStore(path)
    assert reloaded.get("api_key") == "abcdef123456"
    assert reloaded.get("view_filter") == "pending"
    assert reloaded.get("missing", "fallback") == "fallback"


def test_file_store_parses_comments_and_blank_lines(tmp_path):
    path = tmp_path / "prefs"
    path.write_text("# comment\n; another\n\npane_width = 0.3\nnot a pair\n")

    store = FilePreferenceStore(path)
    assert store.get("pane_width") == "0.3"
    assert store.get("not a pair") is None


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_file_store_is_private(tmp_path):
    path = tmp_path / "prefs"
    FilePreferenceStore(path).set("api_key", "abcdef123456")
    assert path.stat().st_mode & 0o777 == 0o600


def test_missing_file_reads_as_empty(tmp_path):
    assert FilePreferenceStore(tmp_path / "absent").get("api_key") is None


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 0.5), ("0.3", 0.3), ("0.05", 0.2), ("0.95", 0.8), ("wide", 0.5)],
)
def test_pane_width_clamped(raw, expected):
    values = {} if raw is None else {"pane_width": raw}
    assert Preferences(InMemoryPreferenceStore(values)).pane_width == pytest.approx(expected)


def test_typed_setters():
    store = InMemoryPreferenceStore()
    prefs = Preferences(store)

    prefs.pane_width = 0.9
    prefs.hide_decided = True
    prefs.view_filter = "matched"
    prefs.api_key = "  key-with-spaces  "

    assert store.values == {
        "pane_width": "0.80",
        "hide_decided": "true",
        "view_filter": "matched",
        "api_key": "key-with-spaces",
    }
    assert prefs.hide_decided


def test_validate_api_key():
    assert validate_api_key("0123456789")
    assert not validate_api_key("  short  ")


def test_mask_api_key():
    assert mask_api_key("abcd1234efgh5678") == "abcd...5678"
    assert mask_api_key("") == "not configured"
    assert mask_api_key("shortkey") == "********"


def test_resolve_api_key_prefers_stored():
    prefs = Preferences(InMemoryPreferenceStore({"api_key": "stored-key-123"}))

    def prompt():
        raise AssertionError("prompt should not be called")

    assert resolve_api_key(prefs, prompt) == "stored-key-123"


def test_resolve_api_key_prompts_and_persists():
    store = InMemoryPreferenceStore()
    key = resolve_api_key(Preferences(store), lambda: " new-key-123456 ")
    assert key == "new-key-123456"
    assert store.values["api_key"] == "new-key-123456"


def test_resolve_api_key_skip_and_invalid():
    assert resolve_api_key(Preferences(InMemoryPreferenceStore()), lambda: None) == ""
    assert resolve_api_key(Preferences(InMemoryPreferenceStore()), lambda: "short") == ""
    assert resolve_api_key(Preferences(InMemoryPreferenceStore())) == ""


def test_resolve_api_key_save_failure_still_returns_key():
    class ReadOnlyStore(InMemoryPreferenceStore):
        def set(self, key, value):
            raise OSError("read-only")

    assert resolve_api_key(Preferences(ReadOnlyStore()), lambda: "valid-key-123") == "valid-key-123"
