from __future__ import annotations

import pytest

from app.scraping.session_manager import SessionManager


class _FakeSession:
    def __init__(self) -> None:
        self.closed = False
        self.cookies: dict[str, str] = {}

    def close(self) -> None:
        self.closed = True


class _Factory:
    def __init__(self) -> None:
        self.created: list[_FakeSession] = []

    def __call__(self) -> _FakeSession:
        session = _FakeSession()
        self.created.append(session)
        return session


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestSessionManager:
    def test_rotates_after_request_budget(self) -> None:
        factory = _Factory()
        manager = SessionManager(max_requests_per_session=3, session_factory=factory)

        first = [manager.acquire() for _ in range(3)]
        first_id = manager.session_id
        fourth = manager.acquire()

        assert all(session is factory.created[0] for session in first)
        assert fourth is factory.created[1]
        assert factory.created[0].closed
        assert manager.session_id != first_id
        assert manager.request_count == 1

    def test_rotates_after_max_age(self) -> None:
        factory = _Factory()
        clock = _Clock()
        manager = SessionManager(
            max_requests_per_session=100,
            max_session_age_seconds=60,
            session_factory=factory,
            clock=clock,
        )

        manager.acquire()
        clock.now = 61.0
        manager.acquire()

        assert len(factory.created) == 2

    def test_forced_rotation_resets_counter(self) -> None:
        factory = _Factory()
        manager = SessionManager(session_factory=factory)
        manager.acquire()
        manager.acquire()

        manager.rotate()

        assert manager.request_count == 0
        assert len(factory.created) == 2

    def test_stats_report_current_session(self) -> None:
        manager = SessionManager(session_factory=_Factory())
        manager.acquire()

        stats = manager.stats()

        assert stats["session_id"] == manager.session_id
        assert stats["request_count"] == 1
        assert stats["cookie_count"] == 0

    @pytest.mark.parametrize("kwargs", [{"max_requests_per_session": 0}, {"max_session_age_seconds": 0}])
    def test_invalid_thresholds_rejected(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            SessionManager(session_factory=_Factory(), **kwargs)
