"""Constants specific to Slack operations."""

from mcp_slack import config
from mcp_slack.utils.errors import WriteProtectionError

DEFAULT_CHANNEL_TYPES = "public_channel,private_channel"

# Channels that archive and leave refuse to touch unless explicitly allowed
IMPORTANT_CHANNEL_NAMES: frozenset = frozenset(
    {"general", "announcements", "random", "important", "company", "all-hands"}
)

MESSAGE_TS_PATTERN = r"^\d+\.\d+$"
CHANNEL_NAME_PATTERN = r"^[a-z0-9_-]+$"
CHANNEL_REF_PATTERN = r"^(#?[a-z0-9_-]+|[CDG][A-Z0-9]{8,})$"
FILE_ID_PATTERN = r"^F[A-Z0-9]+$"

MAX_MESSAGE_LENGTH = 40000
MAX_PINS_PER_CHANNEL = 100
INVITE_BATCH_SIZE = 5


def check_read_only() -> None:
    """Check if Slack is in read-only mode and raise an error if it is.

    Raises:
        WriteProtectionError: If MCP_SLACK_READ_ONLY is enabled.
    """
    if config.MCP_SLACK_READ_ONLY:
        raise WriteProtectionError(
            "Slack MCP is in read-only mode. Write operations are disabled. "
            "Set MCP_SLACK_READ_ONLY=false to enable write operations."
        )


def check_delete_protection() -> None:
    """Check if destructive operations are protected and raise an error if they are.

    Raises:
        WriteProtectionError: If MCP_SLACK_DELETE_PROTECTION is enabled.
    """
    if config.MCP_SLACK_DELETE_PROTECTION:
        raise WriteProtectionError(
            "Destructive operations are protected. Set MCP_SLACK_DELETE_PROTECTION=false "
            "to enable deleting, archiving and removing. "
            "WARNING: These operations cannot be undone from this server."
        )
