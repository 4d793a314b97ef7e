import logging
from telegram.error import TelegramError
from waitlists import EmptyMessage, NotOwner, WrongContext
import messages
import models


def resolve_owned_waitlist(chat, owner_username, words):
    """Split `/broadcast` arguments into the sender's waitlist and the message text.

    The product is the longest name of a waitlist owned by `owner_username`
    (in any chat) that prefixes `words`; on equal length the oldest waitlist wins.
    Raises EmptyMessage when `words` is exactly an owned name.
    """
    if chat.type != "private":
        raise WrongContext(" ".join(words))
    if not owner_username:
        raise NotOwner(words[0] if words else "")

    best = None
    named_only = None
    for waitlist in models.get_owned_waitlists(owner_username):
        name_words = waitlist['name'].split()
        if len(words) > len(name_words) and words[:len(name_words)] == name_words:
            if best is None or len(name_words) > len(best['name'].split()):
                best = waitlist
        elif words == name_words:
            named_only = waitlist

    # All words name a waitlist, so the message itself is missing
    if named_only is not None:
        raise EmptyMessage(named_only['name'])
    if best is None:
        raise NotOwner(words[0] if words else "")
    return best, " ".join(words[len(best['name'].split()):])

def compose_message(waitlist, text):
    return "\n\n".join([
        messages.BROADCAST_HEADER.format(owner=waitlist['owner_username']),
        text,
        messages.BROADCAST_FOOTER.format(product=waitlist['name']),
    ])

async def send_broadcast(bot, waitlist, text):
    """One send attempt per subscriber, in store order. Returns (sent_count, failed_user_ids)."""
    body = compose_message(waitlist, text)
    sent = 0
    failed = []
    for subscriber in models.get_subscribers(waitlist['id']):
        try:
            await bot.send_message(subscriber['user_id'], body)
            sent += 1
        except TelegramError as e:
            logging.error(f"Failed to send broadcast to {subscriber['user_id']}: {e}")
            failed.append(subscriber['user_id'])
    logging.info(f"Broadcast for waitlist {waitlist['id']}: {sent} sent, {len(failed)} failed")
    return sent, failed
