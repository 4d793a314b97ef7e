import logging
from datetime import datetime, timedelta
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReactionTypeEmoji
from telegram.error import Forbidden, TelegramError
from telegram.helpers import create_deep_linked_url
from analytics import analytics
import messages
import models

UNREACHABLE_MARKER = "can't initiate conversation"
DEEP_LINK_PAYLOAD = "register"


def is_unreachable_error(error):
    """True for the Forbidden error Telegram raises when a user never started the bot."""
    return isinstance(error, Forbidden) and UNREACHABLE_MARKER in error.message


class RegistrationGate:
    """Decides whether a user can receive direct messages from the bot.

    Users who cannot are nudged in the group with a deep link. Their
    subscription request is held until they start a private conversation
    (complete_registration) or the prompt expires (expire_prompt).

    State lives only for the lifetime of the process:
      verified_users        user ids known to accept DMs, never pruned
      pending_prompts       user id -> {'message_id', 'chat_id'} of the visible prompt,
                            None while the probe is in flight
      pending_subscriptions user id -> {'product_name', 'message_id', 'chat_id'}
    """

    def __init__(self, bot, scheduler, prompt_timeout_seconds=60):
        self.bot = bot
        self.scheduler = scheduler
        self.prompt_timeout_seconds = prompt_timeout_seconds
        self.verified_users = set()
        self.pending_prompts = {}
        self.pending_subscriptions = {}

    @staticmethod
    def job_id(user_id):
        return f"prompt_{user_id}"

    async def can_receive_direct_messages(self, user, chat_id, waitlist):
        if user.id in self.verified_users:
            return True

        # A nudge is already outstanding, don't send another one
        if user.id in self.pending_prompts:
            return False

        # Hold the slot while the probe is in flight, the real prompt replaces it
        self.pending_prompts[user.id] = None
        try:
            await self.bot.send_message(
                user.id,
                messages.REGISTRATION_PROBE.format(product=waitlist['name'], owner=waitlist['owner_username']),
                disable_notification=True
            )
            self.verified_users.add(user.id)
            self._release_slot(user.id)
            return True
        except TelegramError as e:
            if not is_unreachable_error(e):
                logging.warning(f"Probe to user {user.id} failed: {e}")
                self._release_slot(user.id)
                return False

        try:
            await self._send_prompt(user, chat_id, waitlist)
        except TelegramError as e:
            logging.error(f"Failed to send registration prompt to chat {chat_id}: {e}")
            self._release_slot(user.id)
        return False

    def _release_slot(self, user_id):
        # Requests held while the probe ran have no prompt to resolve them
        if user_id in self.pending_prompts and self.pending_prompts[user_id] is None:
            del self.pending_prompts[user_id]
            self.pending_subscriptions.pop(user_id, None)

    async def _send_prompt(self, user, chat_id, waitlist):
        url = create_deep_linked_url(self.bot.username, DEEP_LINK_PAYLOAD)
        keyboard = [[InlineKeyboardButton(messages.REGISTRATION_BUTTON, url=url)]]
        prompt = await self.bot.send_message(
            chat_id,
            messages.REGISTRATION_PROMPT.format(
                username=user.username or user.first_name or 'there',
                product=waitlist['name'],
                owner=waitlist['owner_username']
            ),
            reply_markup=InlineKeyboardMarkup(keyboard)
        )
        self.pending_prompts[user.id] = {'message_id': prompt.message_id, 'chat_id': chat_id}

        self.scheduler.add_job(
            self.expire_prompt,
            'date',
            run_date=datetime.now() + timedelta(seconds=self.prompt_timeout_seconds),
            args=[user.id],
            id=self.job_id(user.id),
            replace_existing=True
        )
        logging.info(f"Registration prompt sent to user {user.id} in chat {chat_id}")

    def hold_subscription(self, user_id, product_name, message_id, chat_id):
        """Remember a subscribe request until the user's prompt resolves.

        Overwrites any earlier request. Returns False without recording anything
        when no prompt is outstanding, since nothing would ever expire the entry.
        """
        if user_id not in self.pending_prompts:
            return False
        self.pending_subscriptions[user_id] = {
            'product_name': product_name,
            'message_id': message_id,
            'chat_id': chat_id,
        }
        return True

    async def expire_prompt(self, user_id):
        # Already resolved by /start, or only a probe is in flight
        prompt = self.pending_prompts.get(user_id)
        if prompt is None:
            return
        del self.pending_prompts[user_id]

        dropped = self.pending_subscriptions.pop(user_id, None)
        logging.info(f"Registration prompt for user {user_id} expired, pending subscription dropped: {dropped is not None}")
        try:
            await self.bot.delete_message(prompt['chat_id'], prompt['message_id'])
        except TelegramError as e:
            logging.info(f"Could not delete expired prompt for user {user_id}: {e}")

    async def complete_registration(self, user):
        """Called when the user starts a private conversation with the bot. Never raises."""
        self.verified_users.add(user.id)

        prompt = self.pending_prompts.pop(user.id, None)
        if prompt:
            self._cancel_expiry(user.id)
            try:
                await self.bot.delete_message(prompt['chat_id'], prompt['message_id'])
            except TelegramError as e:
                logging.info(f"Could not delete prompt for user {user.id}: {e}")

        pending = self.pending_subscriptions.pop(user.id, None)
        if not pending:
            return

        try:
            waitlist = models.get_waitlist(pending['product_name'], pending['chat_id'])
            if waitlist and not models.get_subscriber(waitlist['id'], user.id):
                if models.add_subscriber(waitlist['id'], user.id, user.username):
                    analytics.track(waitlist['id'], user.id, user.username, 'SUBSCRIBE', 'via=registration')
        except Exception as e:
            logging.error(f"Failed to complete pending subscription for user {user.id}: {e}")

        try:
            await self.bot.set_message_reaction(
                pending['chat_id'],
                pending['message_id'],
                reaction=ReactionTypeEmoji(messages.THUMBS_UP)
            )
        except TelegramError as e:
            logging.warning(f"Failed to react to subscribe message of user {user.id}: {e}")

    def _cancel_expiry(self, user_id):
        try:
            if self.scheduler.get_job(self.job_id(user_id)):
                self.scheduler.remove_job(self.job_id(user_id))
        except Exception as e:
            logging.warning(f"Failed to cancel prompt expiry for user {user_id}: {e}")

    def close(self):
        for user_id in list(self.pending_prompts):
            self._cancel_expiry(user_id)
        self.verified_users.clear()
        self.pending_prompts.clear()
        self.pending_subscriptions.clear()
