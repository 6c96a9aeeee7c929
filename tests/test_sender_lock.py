import threading
import time
from unittest.mock import MagicMock

from app.services.guest_state_service import StaticGuestStateProvider
from app.services.sender_lock import SenderLockRegistry, acquire_transaction_lock
from app.services.sms_service import LogSmsSender, deliver_reply


class TestSenderLockRegistry:
    def test_same_key_shares_lock(self):
        registry = SenderLockRegistry()

        first = registry.lock_for("010")
        second = registry.lock_for("010")

        assert first is second
        assert registry.lock_for("011") is not first

    def test_unused_locks_are_released(self):
        registry = SenderLockRegistry()
        registry.lock_for("010")

        assert len(registry) == 0

    def test_same_sender_is_serialized(self):
        registry = SenderLockRegistry()
        order = []

        def worker(name):
            with registry.hold("010"):
                order.append(f"{name}-start")
                time.sleep(0.05)
                order.append(f"{name}-end")

        threads = [threading.Thread(target=worker, args=(n,)) for n in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert order[0].endswith("start") and order[1].endswith("end")
        assert order[0][0] == order[1][0]

    def test_disabled_does_not_lock(self):
        registry = SenderLockRegistry()

        with registry.hold("010", enabled=False):
            assert len(registry) == 0


class TestTransactionLock:
    def test_postgres_takes_advisory_lock(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "postgresql"

        assert acquire_transaction_lock(db, "01012345678") is True

        statement, params = db.execute.call_args.args
        assert "pg_advisory_xact_lock(hashtext(:key))" in str(statement)
        assert params == {"key": "01012345678"}

    def test_other_backends_skip(self, db):
        assert acquire_transaction_lock(db, "01012345678") is False

    def test_mock_sqlite_session_does_not_execute(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "sqlite"

        assert acquire_transaction_lock(db, "01012345678") is False
        db.execute.assert_not_called()


class TestCollaboratorDefaults:
    def test_static_guest_state(self):
        assert StaticGuestStateProvider().lookup("01012345678") == "UNKNOWN"

    def test_log_sender_delivers(self):
        assert deliver_reply("01012345678", "안녕하세요", sender=LogSmsSender()) is True
