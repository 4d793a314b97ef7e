import re
import sqlite3
import models

DYNAMIC_SUBSCRIBE_PATTERN = r"^/subscribe_(\S+)"
BOT_MENTION_SUFFIX = re.compile(r"^(.+?)@[A-Za-z0-9_]+$")


class WaitlistError(Exception):
    def __init__(self, product_name):
        super().__init__(product_name)
        self.product_name = product_name

class WaitlistNotFound(WaitlistError):
    pass

class WaitlistExists(WaitlistError):
    pass

class AlreadySubscribed(WaitlistError):
    pass

class PermissionDenied(WaitlistError):
    pass

class NotOwner(PermissionDenied):
    pass

class WrongContext(PermissionDenied):
    pass

class EmptyMessage(WaitlistError):
    pass


def sanitize_name(name):
    """Command-safe form of a product name: whitespace runs become '_', lowercased."""
    return re.sub(r"\s+", "_", name.strip()).lower()

def parse_command_name(text):
    """'/subscribe_Launch_Pad@my_bot extra' -> 'Launch_Pad'. None if text isn't a dynamic subscribe."""
    match = re.match(DYNAMIC_SUBSCRIBE_PATTERN, text or "")
    if not match:
        return None
    command_name = match.group(1)
    mention = BOT_MENTION_SUFFIX.match(command_name)
    if mention:
        command_name = mention.group(1)
    return command_name

def resolve_waitlist(chat_id, product_name):
    waitlist = models.get_waitlist(product_name, chat_id)
    if not waitlist:
        raise WaitlistNotFound(product_name)
    return waitlist

def resolve_command_name(chat_id, command_name):
    # Exact name first, then any waitlist whose sanitized name matches
    waitlist = models.get_waitlist(command_name.replace("_", " "), chat_id)
    if waitlist:
        return waitlist

    wanted = command_name.lower()
    for waitlist in models.get_waitlists(chat_id):
        if sanitize_name(waitlist['name']) == wanted:
            return waitlist
    raise WaitlistNotFound(command_name)

def open_waitlist(chat_id, product_name, owner_username):
    if models.get_waitlist(product_name, chat_id):
        raise WaitlistExists(product_name)
    try:
        return models.create_waitlist(product_name, chat_id, owner_username)
    except sqlite3.IntegrityError:
        raise WaitlistExists(product_name)

async def subscribe(gate, waitlist, user, chat, message_id):
    """Subscribe `user` to `waitlist` from `chat`.

    Returns True when the subscription was created, False when it is held by
    the registration gate until the user starts a private chat with the bot.
    Raises AlreadySubscribed if the user is on the waitlist.
    """
    if models.get_subscriber(waitlist['id'], user.id):
        raise AlreadySubscribed(waitlist['name'])

    if chat.type != "private":
        if not await gate.can_receive_direct_messages(user, chat.id, waitlist):
            gate.hold_subscription(user.id, waitlist['name'], message_id, chat.id)
            return False

    # The unique constraint wins races with a concurrent subscribe
    if not models.add_subscriber(waitlist['id'], user.id, user.username):
        raise AlreadySubscribed(waitlist['name'])
    return True
