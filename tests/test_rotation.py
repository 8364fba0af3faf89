from unittest.mock import MagicMock

import pytest

from services.rotation import RotationScheduler


def test_tick_rotates_open_sessions(app, clock):
    with app.app_context():
        manager = app.extensions["attendance"]["manager"]
        sid = manager.create_session("C1", created_by="admin-1")["sessionId"]
        before = manager.get_session(sid).current_token

    clock.advance(30)
    rotated = RotationScheduler(app, 30).tick()

    assert rotated == 1
    with app.app_context():
        assert manager.get_session(sid).current_token != before


def test_scheduler_survives_a_failing_tick(app, monkeypatch):
    manager = MagicMock()
    calls = []

    def rotate():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        scheduler._stop.set()
        return 0

    manager.rotate_tokens.side_effect = rotate
    monkeypatch.setitem(app.extensions["attendance"], "manager", manager)
    scheduler = RotationScheduler(app, 0.01)

    scheduler.start()
    scheduler._thread.join(timeout=5)

    assert len(calls) == 2
    scheduler.stop()


def test_scheduler_rejects_non_positive_interval(app):
    with pytest.raises(ValueError):
        RotationScheduler(app, 0)


def test_rotate_tokens_cli(app):
    with app.app_context():
        app.extensions["attendance"]["manager"].create_session("C1", created_by="admin-1")

    result = app.test_cli_runner().invoke(args=["rotate-tokens"])

    assert result.exit_code == 0
    assert "Rotated 1 session token(s)" in result.output
