"""Configuration constants.

Centralizes defaults shared by the server, the client and the CLI.
"""

# Network
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
CHAT_PATH = "/ws/chat"
HEALTH_PATH = "/health"
RECONNECT_DELAY_SECONDS = 2.0  # Fixed delay between reconnect attempts

# WebSocket keepalive
PING_INTERVAL_SECONDS = 30
PING_TIMEOUT_SECONDS = 10

# Model
DEFAULT_PROVIDER = "openai"
SYSTEM_PROMPT = (
    "You are a coding assistant. Your goal is to complete the coding task given to you by USER.\n"
    "You can and should use provided tools to complete the task."
)

# Logging
SERVER_LOG_FORMAT = "%(message)s"
CLIENT_LOG_FILE = "jean-cli.log"
CLIENT_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_PREVIEW_CHARS = 500  # Characters of tool results echoed into logs

# Transcript log
TRANSCRIPT_LOG_DIR = "conversation_logs"


def default_server_url(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> str:
    """WebSocket URL of the streaming endpoint."""
    return f"ws://{host}:{port}{CHAT_PATH}"
