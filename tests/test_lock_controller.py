"""Tests for lock identity and the acquisition/release state machine."""

import logging

import pytest

from redis_mutex.core.config import LockConfig
from redis_mutex.core.constants import RELEASE_SCRIPT, TOKEN_LENGTH
from redis_mutex.core.exceptions import CommandError, DisconnectError, LockStateError
from redis_mutex.locks.controller import LockController, LockState
from redis_mutex.locks.identity import LockIdentity, generate_token
from redis_mutex.protocol.session import Session


class FakeClock:
    """Monotonic clock advanced only by the injected sleep"""

    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class _StopPolling(Exception):
    pass


def _controller(session, key="job-x", wait=2, interval=0.5, ttl=5, clock=None):
    config = LockConfig(key=key, ttl_seconds=ttl, acquire_timeout_seconds=wait, poll_interval_seconds=interval)
    kwargs = {}
    if clock is not None:
        kwargs = {"clock": clock, "sleep": clock.sleep}
    return LockController(session, LockIdentity.generate(key), config, **kwargs)


class TestLockIdentity:
    def test_generated_token_shape(self):
        token = generate_token()
        assert len(token) == TOKEN_LENGTH
        assert token.isalnum()

    def test_tokens_are_unique(self):
        assert len({generate_token() for _ in range(50)}) == 50

    def test_token_hidden_from_repr(self):
        identity = LockIdentity.generate("job-x")
        assert identity.token not in repr(identity)
        assert "job-x" in repr(identity)

    def test_identity_is_immutable(self):
        identity = LockIdentity.generate("job-x")
        with pytest.raises(AttributeError):
            identity.token = "x" * 40

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            LockIdentity.generate("")

    def test_short_token_rejected(self):
        with pytest.raises(ValueError):
            LockIdentity("job-x", "abc")


class TestAcquire:
    def test_acquires_free_lock_first_try(self, coordinator, session):
        controller = _controller(session)
        result = controller.acquire()

        assert result.acquired
        assert result.state is LockState.HELD
        assert result.attempts == 1
        assert result.waited_seconds == 0.0
        assert controller.held
        assert coordinator.get("job-x") == controller.identity.token
        assert 0 < coordinator.ttl_ms("job-x") <= 5000

    def test_sends_conditional_set_with_ttl(self, coordinator, session):
        controller = _controller(session, ttl=60)
        controller.acquire()
        assert coordinator.commands[-1] == ["SET", "job-x", controller.identity.token, "NX", "PX", "60000"]

    def test_mutual_exclusion(self, coordinator, session, connection_config):
        first = _controller(session)
        assert first.acquire().acquired

        with Session.connect(connection_config) as other:
            clock = FakeClock()
            second = _controller(other, wait=1, interval=0.25, clock=clock)
            result = second.acquire()

        assert not result.acquired
        assert result.state is LockState.TIMED_OUT
        assert coordinator.get("job-x") == first.identity.token

    def test_timeout_with_constant_interval(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        clock = FakeClock()
        waits = []
        controller = _controller(session, wait=2, interval=0.5, clock=clock)

        result = controller.acquire(on_wait=waits.append)

        assert result.state is LockState.TIMED_OUT
        assert result.attempts == 4
        assert result.waited_seconds == pytest.approx(2.0)
        assert clock.sleeps == [0.5, 0.5, 0.5, 0.5]
        assert waits == pytest.approx([0.5, 1.0, 1.5, 2.0])
        assert controller.state is LockState.TIMED_OUT
        assert not controller.held

    def test_wait_progress_is_monotonic(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        clock = FakeClock()
        waits = []
        _controller(session, wait=3, interval=0.3, clock=clock).acquire(on_wait=waits.append)
        assert waits == sorted(waits)
        assert waits[-1] >= 3

    def test_zero_timeout_waits_indefinitely(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        clock = FakeClock()

        def sleep(seconds):
            clock.sleep(seconds)
            if len(clock.sleeps) >= 50:
                raise _StopPolling

        config = LockConfig(key="job-x", ttl_seconds=5, acquire_timeout_seconds=0, poll_interval_seconds=10)
        controller = LockController(session, LockIdentity.generate("job-x"), config, clock=clock, sleep=sleep)

        with pytest.raises(_StopPolling):
            controller.acquire()
        assert controller.state is LockState.TRYING
        assert coordinator.command_names().count("SET") == 50

    def test_acquires_after_holder_expires(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=0.15)
        controller = _controller(session, wait=5, interval=0.05)
        result = controller.acquire()
        assert result.acquired
        assert result.attempts > 1
        assert result.waited_seconds > 0

    def test_error_reply_is_fatal(self, coordinator, session):
        coordinator.error_replies["SET"] = "WRONGTYPE Operation against a key holding the wrong kind of value"
        controller = _controller(session)

        with pytest.raises(CommandError) as exc_info:
            controller.acquire()

        assert controller.state is LockState.FATAL
        assert exc_info.value.command == "SET"
        assert "WRONGTYPE" in str(exc_info.value)
        assert controller.identity.token not in str(exc_info.value)
        assert coordinator.command_names().count("SET") == 1

    def test_disconnect_while_polling_stops_immediately(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        coordinator.drop_on = "SET"
        coordinator.drop_after = 1
        clock = FakeClock()
        controller = _controller(session, wait=10, interval=0.1, clock=clock)

        with pytest.raises(DisconnectError):
            controller.acquire()

        assert controller.state is LockState.FATAL
        assert coordinator.command_names().count("SET") == 2
        assert clock.sleeps == [0.1]

    def test_acquire_twice_rejected(self, session):
        controller = _controller(session)
        controller.acquire()
        with pytest.raises(LockStateError):
            controller.acquire()

    def test_contention_logged_once(self, coordinator, session, caplog):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        caplog.set_level(logging.INFO, logger="redis_mutex")
        _controller(session, wait=1, interval=0.25, clock=FakeClock()).acquire()
        waiting = [r for r in caplog.records if "held by another owner" in r.getMessage()]
        assert len(waiting) == 1

    @pytest.mark.parametrize("raw", [b"+OK\r\n", b"+\r\n", b"$0\r\n\r\n", b"$2\r\nok\r\n", b":1\r\n"])
    def test_any_non_null_set_reply_means_held(self, coordinator, session, raw):
        coordinator.raw_replies["SET"] = raw
        controller = _controller(session)

        result = controller.acquire()

        assert result.acquired
        assert result.attempts == 1
        assert controller.state is LockState.HELD

    def test_null_set_reply_keeps_polling(self, coordinator, session):
        coordinator.raw_replies["SET"] = b"$-1\r\n"
        controller = _controller(session, wait=1, interval=0.25, clock=FakeClock())

        result = controller.acquire()

        assert result.state is LockState.TIMED_OUT
        assert result.attempts == 4


class TestRelease:
    def test_release_deletes_own_lock(self, coordinator, session):
        controller = _controller(session)
        controller.acquire()

        assert controller.release() is True
        assert controller.state is LockState.RELEASED
        assert coordinator.get("job-x") is None
        assert coordinator.commands[-1] == ["EVAL", RELEASE_SCRIPT, "1", "job-x", controller.identity.token]

    def test_release_leaves_foreign_lock(self, coordinator, session, caplog):
        controller = _controller(session)
        controller.acquire()
        # TTL lapsed and another process took the lock
        coordinator.set("job-x", "new-owner-token", ttl_seconds=30)

        with caplog.at_level(logging.WARNING):
            assert controller.release() is False

        assert coordinator.get("job-x") == "new-owner-token"
        assert controller.state is LockState.RELEASED
        assert any("no longer held" in r.getMessage() for r in caplog.records)

    def test_release_after_expiry(self, coordinator, session):
        controller = _controller(session)
        controller.acquire()
        coordinator.delete("job-x")
        assert controller.release() is False

    def test_release_without_hold_is_noop(self, coordinator, session):
        controller = _controller(session)
        assert controller.release() is None
        assert "EVAL" not in coordinator.command_names()

    def test_release_after_timeout_is_noop(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)
        controller = _controller(session, wait=1, interval=0.5, clock=FakeClock())
        controller.acquire()
        assert controller.release() is None
        assert coordinator.get("job-x") == "someone-else"

    def test_release_attempted_once(self, coordinator, session):
        controller = _controller(session)
        controller.acquire()
        controller.release()
        assert controller.release() is None
        assert coordinator.command_names().count("EVAL") == 1

    def test_release_error_reply_is_logged_not_raised(self, coordinator, session, caplog):
        controller = _controller(session)
        controller.acquire()
        coordinator.error_replies["EVAL"] = "NOSCRIPT scripting disabled"

        with caplog.at_level(logging.ERROR):
            assert controller.release() is False

        assert controller.state is LockState.RELEASED
        assert any("NOSCRIPT" in r.getMessage() for r in caplog.records)

    def test_release_on_lost_connection_is_logged_not_raised(self, coordinator, session, caplog):
        controller = _controller(session)
        controller.acquire()
        coordinator.drop_on = "EVAL"

        with caplog.at_level(logging.ERROR):
            assert controller.release() is False

        assert controller.state is LockState.RELEASED
        assert any("Failed to release" in r.getMessage() for r in caplog.records)

    def test_release_after_interrupted_set(self, coordinator, connection_config):
        """Test that a set whose reply arrived but was never recorded is still released"""

        class InterruptAfterSet(Session):
            def send(self, *args):
                reply = super().send(*args)
                if args[0] == "SET":
                    raise KeyboardInterrupt
                return reply

        session = InterruptAfterSet.connect(connection_config)
        try:
            controller = _controller(session)
            with pytest.raises(KeyboardInterrupt):
                controller.acquire()

            assert controller.state is LockState.TRYING
            assert coordinator.get("job-x") == controller.identity.token
            assert controller.release() is True
            assert controller.state is LockState.RELEASED
            assert coordinator.get("job-x") is None
        finally:
            session.close()

    def test_interrupt_between_polls_does_not_release(self, coordinator, session):
        coordinator.set("job-x", "someone-else", ttl_seconds=30)

        def sleep(seconds):
            raise KeyboardInterrupt

        config = LockConfig(key="job-x", ttl_seconds=5, acquire_timeout_seconds=2, poll_interval_seconds=0.5)
        controller = LockController(session, LockIdentity.generate("job-x"), config, sleep=sleep)

        with pytest.raises(KeyboardInterrupt):
            controller.acquire()

        assert controller.release() is None
        assert "EVAL" not in coordinator.command_names()
        assert coordinator.get("job-x") == "someone-else"
