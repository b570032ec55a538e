"""Tests for the view state machine and invalidation routing."""

from __future__ import annotations

from src.constants import ALL_VIEWS, View
from src.state.invalidation import INVALIDATION_SCOPES, InvalidationRouter
from src.state.views import ViewStateMachine


def _machine() -> ViewStateMachine:
    return ViewStateMachine(now=lambda: "2026-01-01T00:00:00+00:00")


def test_views_start_stale_and_idle():
    machine = _machine()
    for view in ALL_VIEWS:
        status = machine.status(view)
        assert status.stale is True
        assert status.loading is False
        assert status.error == ""


def test_begin_load_clears_error():
    machine = _machine()
    machine.fail(View.MONITORING, "boom")
    machine.begin_load(View.MONITORING)
    status = machine.status(View.MONITORING)
    assert status.loading is True
    assert status.error == ""


def test_succeed_clears_stale_and_sets_timestamp():
    machine = _machine()
    machine.begin_load("ip-bans")
    machine.succeed("ip-bans", empty=True)
    status = machine.status(View.IP_BANS)
    assert status.stale is False
    assert status.loading is False
    assert status.empty is True
    assert status.updated_at == "2026-01-01T00:00:00+00:00"


def test_fail_keeps_stale_flag():
    machine = _machine()
    machine.begin_load(View.CONFIG)
    machine.fail(View.CONFIG, "API error 500: nope")
    status = machine.status(View.CONFIG)
    assert status.stale is True
    assert status.loading is False
    assert status.error == "API error 500: nope"


def test_fail_with_blank_message_uses_generic_error():
    machine = _machine()
    machine.fail(View.STATUS, "   ")
    assert machine.error(View.STATUS) == "Refresh failed"


def test_invalidate_security_config_marks_only_config_views():
    machine = _machine()
    for view in ALL_VIEWS:
        machine.succeed(view)

    touched = machine.invalidate("securityConfig")

    assert touched == {View.STATUS, View.CONFIG, View.TUNING}
    assert machine.is_stale(View.MONITORING) is False
    assert machine.is_stale(View.IP_BANS) is False
    assert all(machine.is_stale(v) for v in touched)


def test_invalidate_does_not_touch_loading_or_error():
    machine = _machine()
    machine.begin_load(View.MONITORING)
    machine.invalidate("monitoring")
    assert machine.is_loading(View.MONITORING) is True


def test_unknown_view_name_falls_back_to_default():
    machine = _machine()
    assert machine.set_active_view("nonsense") == View.MONITORING
    assert machine.set_active_view("tuning") == View.TUNING


def test_status_is_a_copy():
    machine = _machine()
    machine.status(View.MONITORING).stale = False
    assert machine.is_stale(View.MONITORING) is True


def test_router_resolves_known_scopes():
    router = InvalidationRouter()
    assert router.resolve("ip-bans") == {View.IP_BANS}
    assert router.resolve("all") == frozenset(ALL_VIEWS)
    assert "securityConfig" in router.scopes()


def test_router_unknown_scope_means_all_views():
    router = InvalidationRouter()
    assert router.resolve("does-not-exist") == frozenset(ALL_VIEWS)
    assert router.resolve(None) == frozenset(ALL_VIEWS)
    assert router.resolve("") == frozenset(ALL_VIEWS)


def test_every_view_has_its_own_scope():
    for view in ALL_VIEWS:
        assert INVALIDATION_SCOPES[view.value] == {view}
