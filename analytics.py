import logging
import os

import models

ANALYTICS_ENABLED = os.getenv("ANALYTICS_ENABLED", "1").lower() not in ("0", "false", "no")
ANALYTICS_FLUSH_AT = int(os.getenv("ANALYTICS_FLUSH_AT", "1"))


class Analytics:
    """Buffers bot events and writes them to the action_logs table.

    Tracking never raises: a failed write is logged and the batch dropped.
    """

    def __init__(self, enabled=True, flush_at=1):
        self.enabled = enabled
        self.flush_at = max(1, flush_at)
        self.buffer = []

    def track(self, waitlist_id, user_id, username, action, details=""):
        if not self.enabled:
            return
        self.buffer.append((waitlist_id, user_id, username, action, details))
        if len(self.buffer) >= self.flush_at:
            self.flush()

    def track_command(self, update, command):
        user = update.effective_user
        chat = update.effective_chat
        self.track(None, user.id, user.username, 'COMMAND', f'command={command}, chat_type={chat.type}, chat_id={chat.id}')

    def flush(self):
        if not self.buffer:
            return
        rows, self.buffer = self.buffer, []
        try:
            models.log_actions(rows)
        except Exception as e:
            logging.error(f"Failed to flush {len(rows)} analytics events: {e}")

    def shutdown(self):
        pending = len(self.buffer)
        self.flush()
        logging.info(f"Analytics shut down, flushed {pending} pending events")


analytics = Analytics(enabled=ANALYTICS_ENABLED, flush_at=ANALYTICS_FLUSH_AT)
