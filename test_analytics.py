import unittest
import sqlite3
from unittest.mock import MagicMock, patch
import models
from analytics import Analytics

TEST_DB_PATH = ":memory:"


class MockConnection:
    def __init__(self, real_conn):
        self.real_conn = real_conn

    def cursor(self):
        return self.real_conn.cursor()

    def commit(self):
        self.real_conn.commit()

    def close(self):
        pass

class TestAnalytics(unittest.TestCase):
    def setUp(self):
        self.patcher = patch('models.get_db')
        self.mock_get_db = self.patcher.start()

        self.real_conn = sqlite3.connect(TEST_DB_PATH)
        self.real_conn.row_factory = sqlite3.Row
        self.mock_get_db.return_value = MockConnection(self.real_conn)
        models.init_db()

    def tearDown(self):
        self.real_conn.close()
        self.patcher.stop()

    def logged_actions(self):
        cursor = self.real_conn.cursor()
        cursor.execute("SELECT action FROM action_logs ORDER BY id")
        return [r['action'] for r in cursor.fetchall()]

    def test_events_are_buffered_until_flush_at(self):
        analytics = Analytics(enabled=True, flush_at=3)

        analytics.track(None, 1, "bob", "COMMAND", "command=ping")
        analytics.track(1, 1, "bob", "SUBSCRIBE")
        self.assertEqual(self.logged_actions(), [])

        analytics.track(1, 1, "bob", "UNSUBSCRIBE")
        self.assertEqual(self.logged_actions(), ["COMMAND", "SUBSCRIBE", "UNSUBSCRIBE"])
        self.assertEqual(analytics.buffer, [])

    def test_shutdown_flushes_pending_events(self):
        analytics = Analytics(enabled=True, flush_at=10)
        analytics.track(None, None, None, "STARTUP")

        analytics.shutdown()

        self.assertEqual(self.logged_actions(), ["STARTUP"])

    def test_disabled_analytics_records_nothing(self):
        analytics = Analytics(enabled=False)

        analytics.track(None, 1, "bob", "COMMAND")
        analytics.shutdown()

        self.assertEqual(self.logged_actions(), [])

    def test_flush_failure_is_not_raised(self):
        analytics = Analytics(enabled=True, flush_at=1)

        with patch('models.log_actions', side_effect=sqlite3.OperationalError("database is locked")):
            analytics.track(None, 1, "bob", "COMMAND")

        self.assertEqual(analytics.buffer, [])

    def test_track_command(self):
        analytics = Analytics(enabled=True, flush_at=1)
        update = MagicMock()
        update.effective_user.id = 42
        update.effective_user.username = "bob"
        update.effective_chat.id = -100
        update.effective_chat.type = "group"

        analytics.track_command(update, "listwaitlists")

        cursor = self.real_conn.cursor()
        cursor.execute("SELECT * FROM action_logs")
        row = cursor.fetchone()
        self.assertEqual(row['user_id'], 42)
        self.assertEqual(row['details'], "command=listwaitlists, chat_type=group, chat_id=-100")

if __name__ == '__main__':
    unittest.main()
