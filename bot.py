import logging
import os
from datetime import datetime, timedelta
from dotenv import load_dotenv

# Local modules read their settings at import time
load_dotenv()

from telegram import Update, BotCommand, ReactionTypeEmoji
from telegram.error import TelegramError
from telegram.ext import ApplicationBuilder, CommandHandler, ContextTypes, MessageHandler, filters
from telegram.helpers import escape_markdown
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from registration import RegistrationGate
from analytics import analytics
import broadcast as broadcasting
import waitlists
import messages
import models

# Enable logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)

# Configuration
BOT_TOKEN = os.getenv("BOT_TOKEN")
ADMIN_IDS = {int(i.strip()) for i in os.getenv("ADMIN_IDS", "").split(",") if i.strip()}
PROMPT_TIMEOUT_SECONDS = int(os.getenv("PROMPT_TIMEOUT_SECONDS", "60"))
TEMP_MESSAGE_SECONDS = int(os.getenv("TEMP_MESSAGE_SECONDS", "10"))
WEBHOOK_URL = os.getenv("WEBHOOK_URL")
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")
PORT = int(os.getenv("PORT", "8443"))

# Global scheduler, registration gate and application
scheduler = None
gate = None
application = None


def is_private(update: Update):
    return update.effective_chat.type == "private"

async def is_admin(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if update.effective_user.id in ADMIN_IDS:
        return True
    try:
        member = await context.bot.get_chat_member(update.effective_chat.id, update.effective_user.id)
    except TelegramError as e:
        logging.error(f"Error checking admin status of {update.effective_user.id}: {e}")
        return False
    return member.status in ["creator", "administrator"]

async def delete_message_job(chat_id, message_id):
    try:
        await application.bot.delete_message(chat_id, message_id)
    except TelegramError as e:
        logging.info(f"Could not delete temporary message {message_id} in {chat_id}: {e}")

async def send_temporary_message(update: Update, text):
    """Reply and schedule the reply for deletion, keeping groups clean."""
    message = await update.message.reply_text(text)
    scheduler.add_job(
        delete_message_job,
        'date',
        run_date=datetime.now() + timedelta(seconds=TEMP_MESSAGE_SECONDS),
        args=[message.chat_id, message.message_id]
    )
    return message

async def acknowledge(update: Update, context: ContextTypes.DEFAULT_TYPE, fallback_text):
    # Thumbs up on the command, plain text if reactions are unavailable
    try:
        await context.bot.set_message_reaction(
            update.effective_chat.id,
            update.message.message_id,
            reaction=ReactionTypeEmoji(messages.THUMBS_UP)
        )
    except TelegramError as e:
        logging.info(f"Reaction failed in {update.effective_chat.id}, replying instead: {e}")
        try:
            await update.message.reply_text(fallback_text)
        except TelegramError as e:
            logging.error(f"Failed to acknowledge command in {update.effective_chat.id}: {e}")


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_private(update):
        await update.message.reply_text(messages.START_IN_GROUP)
        return

    user = update.effective_user
    was_verified = user.id in gate.verified_users
    await gate.complete_registration(user)
    if not was_verified:
        analytics.track(None, user.id, user.username, 'USER_REGISTERED', f'first_name={user.first_name}')
    await update.message.reply_text(messages.WELCOME_MESSAGE, parse_mode='Markdown')

async def ping(update: Update, context: ContextTypes.DEFAULT_TYPE):
    analytics.track_command(update, 'ping')
    await update.message.reply_text(messages.PONG)

async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    analytics.track_command(update, 'help')
    await update.message.reply_text(messages.HELP_MESSAGE, parse_mode='Markdown')

async def open_waitlist(update: Update, context: ContextTypes.DEFAULT_TYPE):
    analytics.track_command(update, 'openwaitlist')
    if not await is_admin(update, context):
        await send_temporary_message(update, messages.ONLY_ADMIN_OPEN)
        return

    args = context.args or []
    at_index = next((i for i, arg in enumerate(args) if arg.startswith('@')), -1)
    if at_index < 1:
        await update.message.reply_text(messages.USAGE_OPEN)
        return

    product_name = " ".join(args[:at_index])
    owner_username = args[at_index].lstrip('@')

    try:
        waitlist_id = waitlists.open_waitlist(update.effective_chat.id, product_name, owner_username)
    except waitlists.WaitlistExists:
        await send_temporary_message(update, messages.WAITLIST_EXISTS.format(product=product_name))
        return

    analytics.track(waitlist_id, update.effective_user.id, update.effective_user.username, 'WAITLIST_CREATED', f'product={product_name}, owner={owner_username}')
    await update.message.reply_text(messages.WAITLIST_OPENED.format(
        product=product_name,
        owner=owner_username,
        command=waitlists.sanitize_name(product_name)
    ))

async def close_waitlist(update: Update, context: ContextTypes.DEFAULT_TYPE):
    username = update.effective_user.username
    if not username:
        await send_temporary_message(update, messages.NEED_USERNAME)
        return

    if not context.args:
        await update.message.reply_text(messages.USAGE_CLOSE)
        return

    product_name = " ".join(context.args)
    try:
        waitlist = waitlists.resolve_waitlist(update.effective_chat.id, product_name)
    except waitlists.WaitlistNotFound:
        await update.message.reply_text(messages.WAITLIST_NOT_FOUND.format(product=product_name))
        return

    if waitlist['owner_username'] != username and not await is_admin(update, context):
        await update.message.reply_text(messages.ONLY_OWNER_OR_ADMIN_CLOSE.format(owner=waitlist['owner_username']))
        return

    models.delete_waitlist(waitlist['id'])
    analytics.track(waitlist['id'], update.effective_user.id, username, 'WAITLIST_CLOSED', f'product={product_name}')
    await update.message.reply_text(messages.WAITLIST_CLOSED.format(product=product_name))

async def subscribe_to(update: Update, context: ContextTypes.DEFAULT_TYPE, waitlist, via):
    user = update.effective_user
    try:
        subscribed = await waitlists.subscribe(gate, waitlist, user, update.effective_chat, update.message.message_id)
    except waitlists.AlreadySubscribed:
        await update.message.reply_text(messages.ALREADY_SUBSCRIBED.format(product=waitlist['name']))
        return

    if not subscribed:
        logging.info(f"Subscription of {user.id} to waitlist {waitlist['id']} waits for registration")
        return

    analytics.track(waitlist['id'], user.id, user.username, 'SUBSCRIBE', f'via={via}, chat_type={update.effective_chat.type}')
    await acknowledge(update, context, messages.SUBSCRIBED.format(product=waitlist['name']))

async def subscribe(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args:
        await update.message.reply_text(messages.USAGE_SUBSCRIBE)
        return

    product_name = " ".join(context.args)
    try:
        waitlist = waitlists.resolve_waitlist(update.effective_chat.id, product_name)
    except waitlists.WaitlistNotFound:
        await send_temporary_message(update, messages.WAITLIST_NOT_FOUND.format(product=product_name))
        return

    await subscribe_to(update, context, waitlist, 'command')

async def subscribe_by_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    command_name = waitlists.parse_command_name(update.message.text)
    if not command_name:
        return

    try:
        waitlist = waitlists.resolve_command_name(update.effective_chat.id, command_name)
    except waitlists.WaitlistNotFound:
        await send_temporary_message(update, messages.COMMAND_NOT_FOUND.format(command=command_name))
        return

    await subscribe_to(update, context, waitlist, 'dynamic_command')

async def unsubscribe(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args:
        await update.message.reply_text(messages.USAGE_UNSUBSCRIBE)
        return

    user = update.effective_user
    product_name = " ".join(context.args)

    if is_private(update):
        # In DM the waitlist can live in any chat the user subscribed from
        waitlist = models.find_user_subscription(user.id, product_name)
        if not waitlist:
            await update.message.reply_text(messages.NOT_SUBSCRIBED_ANYWHERE.format(product=product_name))
            return
    else:
        try:
            waitlist = waitlists.resolve_waitlist(update.effective_chat.id, product_name)
        except waitlists.WaitlistNotFound:
            await update.message.reply_text(messages.WAITLIST_NOT_FOUND.format(product=product_name))
            return

    removed = models.remove_subscriber(waitlist['id'], user.id)
    analytics.track(waitlist['id'], user.id, user.username, 'UNSUBSCRIBE', f'removed={removed}, chat_type={update.effective_chat.type}')
    await acknowledge(update, context, messages.UNSUBSCRIBED.format(product=product_name))

async def broadcast(update: Update, context: ContextTypes.DEFAULT_TYPE):
    args = context.args or []
    if is_private(update) and len(args) < 2:
        await update.message.reply_text(messages.USAGE_BROADCAST)
        return

    try:
        waitlist, text = broadcasting.resolve_owned_waitlist(update.effective_chat, update.effective_user.username, args)
    except waitlists.WrongContext:
        await update.message.reply_text(messages.BROADCAST_DM_ONLY)
        return
    except waitlists.EmptyMessage:
        await update.message.reply_text(messages.USAGE_BROADCAST)
        return
    except waitlists.NotOwner as e:
        await update.message.reply_text(messages.BROADCAST_NOT_OWNER.format(product=e.product_name))
        return

    sent, failed = await broadcasting.send_broadcast(context.bot, waitlist, text)
    analytics.track(
        waitlist['id'], update.effective_user.id, update.effective_user.username, 'BROADCAST',
        f'sent={sent}, failed={len(failed)}, length={len(text)}'
    )

    reply = messages.BROADCAST_SENT.format(sent=sent, product=waitlist['name'])
    if failed:
        reply += messages.BROADCAST_FAILED_COUNT.format(failed=len(failed))
    await update.message.reply_text(reply)

async def list_waitlists(update: Update, context: ContextTypes.DEFAULT_TYPE):
    analytics.track_command(update, 'listwaitlists')
    rows = models.get_waitlists(update.effective_chat.id)
    if not rows:
        await update.message.reply_text(messages.LIST_WAITLISTS_EMPTY)
        return

    msg = messages.LIST_WAITLISTS_HEADER
    for waitlist in rows:
        msg += messages.LIST_WAITLISTS_ITEM.format(
            product=escape_markdown(waitlist['name']),
            owner=escape_markdown(waitlist['owner_username']),
            count=waitlist['subscriber_count']
        )
    await update.message.reply_text(msg, parse_mode='Markdown')

async def list_subscribers(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not context.args:
        await update.message.reply_text(messages.USAGE_LIST)
        return

    product_name = " ".join(context.args)
    try:
        waitlist = waitlists.resolve_waitlist(update.effective_chat.id, product_name)
    except waitlists.WaitlistNotFound:
        await update.message.reply_text(messages.WAITLIST_NOT_FOUND.format(product=product_name))
        return

    subscribers = models.get_subscribers(waitlist['id'])
    msg = messages.LIST_SUBSCRIBERS_HEADER.format(
        product=escape_markdown(waitlist['name']),
        owner=escape_markdown(waitlist['owner_username'])
    )
    if not subscribers:
        msg += messages.LIST_SUBSCRIBERS_NONE
    else:
        msg += messages.LIST_SUBSCRIBERS_COUNT.format(count=len(subscribers))
        for subscriber in subscribers:
            if subscriber['username']:
                msg += messages.LIST_SUBSCRIBER_USERNAME.format(username=escape_markdown(subscriber['username']))
            else:
                msg += messages.LIST_SUBSCRIBER_ID.format(user_id=subscriber['user_id'])
    await update.message.reply_text(msg, parse_mode='Markdown')

async def chat_title(context: ContextTypes.DEFAULT_TYPE, chat_id):
    try:
        chat = await context.bot.get_chat(chat_id)
    except TelegramError as e:
        logging.error(f"Failed to get chat info for {chat_id}: {e}")
        return f"Chat {chat_id}"
    if chat.type in ("group", "supergroup", "channel") and chat.title:
        return chat.title
    return f"Chat {chat_id}"

async def my_waitlists(update: Update, context: ContextTypes.DEFAULT_TYPE):
    analytics.track_command(update, 'mywaitlists')
    user_id = update.effective_user.id

    if is_private(update):
        subscriptions = models.get_user_subscriptions(user_id)
        if not subscriptions:
            await update.message.reply_text(messages.MY_WAITLISTS_EMPTY_ALL)
            return
        msg = messages.MY_WAITLISTS_HEADER_ALL
    else:
        subscriptions = models.get_user_subscriptions(user_id, update.effective_chat.id)
        if not subscriptions:
            await update.message.reply_text(messages.MY_WAITLISTS_EMPTY_CHAT)
            return
        msg = messages.MY_WAITLISTS_HEADER_CHAT

    for waitlist in subscriptions:
        msg += messages.MY_WAITLISTS_ITEM.format(
            product=escape_markdown(waitlist['name']),
            owner=escape_markdown(waitlist['owner_username'])
        )
        if is_private(update):
            title = await chat_title(context, waitlist['chat_id'])
            msg += messages.MY_WAITLISTS_GROUP.format(chat=escape_markdown(title))
        msg += "\n"
    await update.message.reply_text(msg, parse_mode='Markdown')

async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    logging.error("Exception while handling an update:", exc_info=context.error)

    user = update.effective_user if isinstance(update, Update) else None
    analytics.track(
        None,
        user.id if user else None,
        user.username if user else None,
        'ERROR',
        f'{type(context.error).__name__}: {context.error}'
    )

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(messages.GENERIC_ERROR)
        except TelegramError as e:
            logging.error(f"Failed to send error reply: {e}")

async def post_init(app):
    global scheduler, gate
    scheduler = AsyncIOScheduler()
    scheduler.start()
    logging.info("Scheduler started in post_init")

    gate = RegistrationGate(app.bot, scheduler, PROMPT_TIMEOUT_SECONDS)
    logging.info(f"Registration gate ready, prompts expire after {PROMPT_TIMEOUT_SECONDS}s")

    # Set bot commands menu
    commands = [
        BotCommand("start", messages.DESC_START),
        BotCommand("ping", messages.DESC_PING),
        BotCommand("help", messages.DESC_HELP),
        BotCommand("openwaitlist", messages.DESC_OPEN),
        BotCommand("closewaitlist", messages.DESC_CLOSE),
        BotCommand("subscribe", messages.DESC_SUBSCRIBE),
        BotCommand("unsubscribe", messages.DESC_UNSUBSCRIBE),
        BotCommand("broadcast", messages.DESC_BROADCAST),
        BotCommand("listwaitlists", messages.DESC_LISTWAITLISTS),
        BotCommand("list", messages.DESC_LIST),
        BotCommand("mywaitlists", messages.DESC_MYWAITLISTS),
    ]
    await app.bot.set_my_commands(commands)
    logging.info("Bot commands menu set")

    analytics.track(None, None, None, 'STARTUP', f'bot={app.bot.username}')

async def post_shutdown(app):
    if gate:
        gate.close()
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
    analytics.shutdown()
    logging.info("Bot shut down")

def main():
    global application
    if not BOT_TOKEN:
        raise ValueError("BOT_TOKEN environment variable is not set")

    models.init_db()

    application = (
        ApplicationBuilder()
        .token(BOT_TOKEN)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("ping", ping))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("openwaitlist", open_waitlist))
    application.add_handler(CommandHandler("closewaitlist", close_waitlist))
    application.add_handler(CommandHandler("subscribe", subscribe))
    application.add_handler(MessageHandler(filters.Regex(waitlists.DYNAMIC_SUBSCRIBE_PATTERN) & filters.UpdateType.MESSAGE, subscribe_by_command))
    application.add_handler(CommandHandler("unsubscribe", unsubscribe))
    application.add_handler(CommandHandler("broadcast", broadcast))
    application.add_handler(CommandHandler("listwaitlists", list_waitlists))
    application.add_handler(CommandHandler("list", list_subscribers))
    application.add_handler(CommandHandler("mywaitlists", my_waitlists))
    application.add_error_handler(error_handler)

    if WEBHOOK_URL:
        logging.info(f"Bot starting webhook on port {PORT}...")
        application.run_webhook(
            listen="0.0.0.0",
            port=PORT,
            url_path="webhook",
            webhook_url=WEBHOOK_URL,
            secret_token=WEBHOOK_SECRET
        )
    else:
        logging.info("Bot starting polling...")
        application.run_polling()

if __name__ == '__main__':
    main()
