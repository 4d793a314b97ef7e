# User-facing messages

THUMBS_UP = "👍"

WELCOME_MESSAGE = (
    "👋 *Welcome to Waitlist Bot!*\n\n"
    "I help you manage product waitlists in your Telegram groups. "
    "Create waitlists, let users subscribe, and broadcast updates directly to interested users.\n\n"
    "🚀 *Quick Start:*\n"
    "1. Add me to your group\n"
    "2. Use `/openwaitlist <product> @username` (admins only)\n"
    "3. Users can `/subscribe <product>` to join\n"
    "4. Waitlist owners can `/broadcast <product> <message>` to notify subscribers\n\n"
    "Use /help to see all available commands."
)
START_IN_GROUP = "👋 Hi! Use /help to see available commands."
PONG = "🏓 pong"

HELP_MESSAGE = (
    "🤖 *Waitlist Bot Commands*\n\n"
    "📌 *Basic:*\n"
    "/start - Start the bot\n"
    "/ping - Check if the bot is alive\n"
    "/help - Show this help message\n\n"
    "📋 *Waitlist Management:*\n"
    "/openwaitlist <product> @username - (Admins only) Open a waitlist on behalf of a user\n"
    "/closewaitlist <product> - (Owner or admin) Close and delete a waitlist\n"
    "/listwaitlists - List all waitlists in this chat\n"
    "/list <product> - Show the subscribers of a waitlist\n\n"
    "👥 *Subscribers:*\n"
    "/subscribe <product> - Join a waitlist\n"
    "/unsubscribe <product> - Leave a waitlist\n"
    "/mywaitlists - Your waitlists (this chat in groups, all chats in DM)\n\n"
    "📢 *Broadcasting:*\n"
    "/broadcast <product> <message> - (DM only) Message everyone on your waitlist"
)

# Errors & Warnings
ONLY_ADMIN_OPEN = "❌ Only admins can open waitlists."
USAGE_OPEN = "Usage: /openwaitlist <product name> @username"
USAGE_CLOSE = "Usage: /closewaitlist <product name>"
USAGE_SUBSCRIBE = "Usage: /subscribe <product name>"
USAGE_UNSUBSCRIBE = "Usage: /unsubscribe <product name>"
USAGE_BROADCAST = "Usage: /broadcast <product name> <message...>"
USAGE_LIST = "Usage: /list <product name>\n\nTo see all waitlists, use /listwaitlists"
NEED_USERNAME = "❌ You need a Telegram username to use this command."
WAITLIST_EXISTS = "❗️ Waitlist \"{product}\" already exists."
WAITLIST_NOT_FOUND = "❗️ No waitlist named \"{product}\" found in this chat."
COMMAND_NOT_FOUND = "❗️ No waitlist found for command \"/subscribe_{command}\"."
NOT_SUBSCRIBED_ANYWHERE = "❗️ You are not subscribed to any waitlist named \"{product}\"."
ONLY_OWNER_OR_ADMIN_CLOSE = "❌ Only @{owner} or group admins can close this waitlist."
ALREADY_SUBSCRIBED = "You are already on the \"{product}\" waitlist."
BROADCAST_DM_ONLY = "📢 Please DM me directly to send broadcasts. This keeps group chats clean!"
BROADCAST_NOT_OWNER = "❗️ No waitlist named \"{product}\" found that you own."
GENERIC_ERROR = "⚠️ Something went wrong while handling that command. Please try again later."

# Success Messages
WAITLIST_OPENED = (
    "✅ Waitlist \"{product}\" opened for @{owner}. They can now /broadcast to it.\n\n"
    "Users can subscribe with: /subscribe_{command}"
)
WAITLIST_CLOSED = "🗑️ Waitlist \"{product}\" has been closed and deleted."
SUBSCRIBED = "You have been subscribed to \"{product}\"!"
UNSUBSCRIBED = "You have been removed from the \"{product}\" waitlist."
BROADCAST_SENT = "📢 Broadcast sent to {sent} subscriber(s) of \"{product}\"."
BROADCAST_FAILED_COUNT = "\n⚠️ {failed} message(s) could not be delivered."

# Registration
REGISTRATION_PROBE = "🔔 Registration confirmed! You'll receive waitlist notifications here for \"{product}\" by @{owner}."
REGISTRATION_PROMPT = (
    "👋 @{username}, to receive notifications for the \"{product}\" waitlist by @{owner}, "
    "please DM me once by clicking the button below or type /start in a private chat with me.\n\n"
    "You only need to do this once!"
)
REGISTRATION_BUTTON = "💬 Start Chat with Bot"

# Broadcast body
BROADCAST_HEADER = "📢 @{owner} sent this message"
BROADCAST_FOOTER = "You are receiving this message because you are on the waitlist for {product}"

# Lists
LIST_WAITLISTS_EMPTY = "📋 No waitlists available in this chat."
LIST_WAITLISTS_HEADER = "📋 *Available Waitlists:*\n\n"
LIST_WAITLISTS_ITEM = "• *{product}*\n  Owner: @{owner}\n  Subscribers: {count}\n\n"
LIST_SUBSCRIBERS_HEADER = "📋 *{product}* waitlist\n\nOwner: @{owner}\n"
LIST_SUBSCRIBERS_NONE = "Subscribers: None yet"
LIST_SUBSCRIBERS_COUNT = "Subscribers ({count}):\n\n"
LIST_SUBSCRIBER_USERNAME = "• @{username}\n"
LIST_SUBSCRIBER_ID = "• User {user_id}\n"
MY_WAITLISTS_EMPTY_ALL = "📝 You are not subscribed to any waitlists."
MY_WAITLISTS_EMPTY_CHAT = "📝 You are not subscribed to any waitlists in this chat."
MY_WAITLISTS_HEADER_ALL = "📝 *All Your Waitlists:*\n\n"
MY_WAITLISTS_HEADER_CHAT = "📝 *Your Waitlists in This Chat:*\n\n"
MY_WAITLISTS_ITEM = "• *{product}*\n  Owner: @{owner}\n"
MY_WAITLISTS_GROUP = "  Group: {chat}\n"

# Bot command menu
DESC_START = "Start the bot"
DESC_PING = "Check if the bot is alive"
DESC_HELP = "Show all commands"
DESC_OPEN = "Open a waitlist (admins)"
DESC_CLOSE = "Close a waitlist (owner or admin)"
DESC_SUBSCRIBE = "Join a waitlist"
DESC_UNSUBSCRIBE = "Leave a waitlist"
DESC_BROADCAST = "Message your subscribers (DM only)"
DESC_LISTWAITLISTS = "List waitlists in this chat"
DESC_LIST = "Show subscribers of a waitlist"
DESC_MYWAITLISTS = "Show your waitlists"
