import json
import logging
from typing import Any, Dict, Optional

from mcp_slack.utils.sanitizer import TokenRedactionFilter, sanitize_value

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

logger = logging.getLogger("mcp-slack")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and install token redaction on every handler."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    for handler in root_logger.handlers:
        if not any(isinstance(f, TokenRedactionFilter) for f in handler.filters):
            handler.addFilter(TokenRedactionFilter())

    # slack_sdk logs full request bodies at DEBUG
    logging.getLogger("slack_sdk").setLevel(logging.WARNING if level == "DEBUG" else logging.ERROR)


def _dump(args: Optional[Dict[str, Any]]) -> str:
    return json.dumps(sanitize_value(args or {}), default=str, ensure_ascii=False)


def log_tool_execution(tool: str, args: Optional[Dict[str, Any]], duration_ms: float) -> None:
    logger.info(f"Tool executed: {tool} ({duration_ms:.1f}ms) args={_dump(args)}")


def log_tool_error(tool: str, error: Any, args: Optional[Dict[str, Any]] = None) -> None:
    logger.error(f"Tool failed: {tool}: {error} args={_dump(args)}")


def log_slack_api(method: str, success: bool, duration_ms: float) -> None:
    if success:
        logger.debug(f"Slack API {method} succeeded in {duration_ms:.1f}ms")
    else:
        logger.warning(f"Slack API {method} failed after {duration_ms:.1f}ms")
