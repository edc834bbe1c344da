# Line protocol constants (defaults, name policy and fixed server texts)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

LINE_TERMINATOR = "\n"
RECV_CHUNK_BYTES = 4096

# Display names
GUEST_PREFIX = "Guest"
NAME_PATTERN = r"^[A-Za-z0-9_-]{3,20}$"

# Commands
CMD_WHISPER = "/w"
CMD_WHISPER_LONG = "/whisper"
CMD_USERNAME = "/username"
CMD_KICK = "/kick"
CMD_CLIENTLIST = "/clientlist"

USAGE_WHISPER = "Usage: /w <username> <message>"
USAGE_USERNAME = "Usage: /username <newName>"
USAGE_KICK = "Usage: /kick <username> <adminPassword>"

# Server texts
MSG_WELCOME = "Welcome, {name}! You are connected to the chat server."
MSG_JOINED = "{name} has joined the chat."
MSG_LEFT = "{name} has left the chat."
MSG_RENAMED = "{old} is now known as {new}"
MSG_RENAME_OK = "You successfully changed your username to {new}"
MSG_KICKED = "You have been kicked from the chat by an administrator."
MSG_SHUTDOWN = "Server is shutting down. Goodbye!"
MSG_UNKNOWN_COMMAND = "Unknown command: {command}"

# Environment overrides
ENV_PORT = "PORT"
ENV_HOST = "LRCD_HOST"
ENV_ADMIN_PASSWORD = "ADMIN_PASSWORD"
ENV_CHAT_LOG = "CHAT_LOG"
ENV_SERVER_LOG = "SERVER_LOG"
ENV_LOG_LEVEL = "LRCD_LOG_LEVEL"
