"""Tests for the draft store (baseline + dirty detection)."""

from __future__ import annotations

from src.dashboard.sections import CONFIG_DRAFT_DEFAULTS
from src.state.drafts import DraftStore


def test_value_equal_to_baseline_is_clean():
    drafts = DraftStore()
    drafts.set("maze", {"enabled": False, "threshold": 50})
    assert drafts.is_dirty("maze", {"threshold": 50, "enabled": False}) is False


def test_edit_makes_section_dirty_until_reverted():
    drafts = DraftStore()
    drafts.set("maze", {"enabled": False, "threshold": 50})
    assert drafts.is_dirty("maze", {"enabled": False, "threshold": 75}) is True
    assert drafts.is_dirty("maze", {"enabled": False, "threshold": 50}) is False


def test_saved_value_becomes_clean_baseline():
    drafts = DraftStore()
    drafts.set("maze", {"enabled": False, "threshold": 50})
    drafts.set("maze", {"enabled": False, "threshold": 75})
    assert drafts.is_dirty("maze", {"enabled": False, "threshold": 75}) is False
    assert drafts.is_dirty("maze", {"enabled": False, "threshold": 50}) is True


def test_section_without_baseline_is_dirty():
    drafts = DraftStore()
    assert drafts.is_dirty("robots", {"enabled": True}) is True
    assert drafts.has("robots") is False


def test_get_returns_fallback_when_missing():
    drafts = DraftStore()
    assert drafts.get("pow", {"enabled": True}) == {"enabled": True}
    assert drafts.get("pow") is None


def test_mutating_input_does_not_change_baseline():
    drafts = DraftStore()
    value = {"enabled": False, "threshold": 50}
    drafts.set("maze", value)
    value["threshold"] = 99
    assert drafts.get("maze")["threshold"] == 50
    assert drafts.is_dirty("maze", {"enabled": False, "threshold": 50}) is False


def test_mutating_returned_value_does_not_change_baseline():
    drafts = DraftStore()
    drafts.set("maze", {"enabled": False, "threshold": 50})
    copy = drafts.get("maze")
    copy["threshold"] = 1
    assert drafts.get("maze")["threshold"] == 50


def test_sections_are_independent():
    drafts = DraftStore(CONFIG_DRAFT_DEFAULTS)
    drafts.set("maze", {"enabled": True, "autoBan": False, "threshold": 50})
    assert drafts.is_dirty("pow", CONFIG_DRAFT_DEFAULTS["pow"]) is False
    assert drafts.fingerprint("pow") is not None
    assert set(drafts.sections()) == set(CONFIG_DRAFT_DEFAULTS)
