"""
Messages exchanged with the animated page through its console.

The page controls the recorder by logging JSON objects such as
``{"type": "command", "action": "start"}``. Commands are turned into
controller events; ``message`` entries are only logged.
"""

import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from omega.logging_config import get_logger

logger = get_logger(__name__)


class MessageType(str, Enum):
    """Kinds of console messages."""
    COMMAND = "command"
    MESSAGE = "message"


class ConsoleMessage(BaseModel):
    """A control or log message emitted by the page."""

    type: str = Field(description="command or message")
    action: str = Field(default="", description="Command name for command messages")
    message: str = Field(default="", description="Free text for message entries")

    @property
    def is_command(self) -> bool:
        return self.type == MessageType.COMMAND.value


def parse_console_message(text: str) -> Optional[ConsoleMessage]:
    """
    Parse the text of a console call.

    Returns:
        The message, or None when the text is not a protocol message
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring console output: {text!r}")
        return None

    if not isinstance(data, dict):
        logger.debug(f"Ignoring console output: {text!r}")
        return None

    try:
        return ConsoleMessage.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid console message {text!r}: {e}")
        return None
