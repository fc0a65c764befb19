"""
utils/validation_utils.py

Purpose: Input validation

- Verification code format check
- Command parsing for verified users
- Input sanitization
"""

import re
from typing import Optional, Tuple

from app.core.exceptions import InvalidInputError
from utils.constants import VERIFICATION_CODE_LENGTH

# ASCII digits only; \d would also accept other Unicode digits
_CODE_PATTERN = re.compile(rf"[0-9]{{{VERIFICATION_CODE_LENGTH}}}")


def sanitize_message(text: Optional[str]) -> str:
    """
    Normalizes raw message text.

    Args:
        text: Message body as received (may be None)

    Returns:
        Trimmed string, empty when there was no text
    """
    if text is None:
        return ""
    return str(text).strip()


def is_verification_code(text: str) -> bool:
    """
    Checks whether a message is shaped like a verification code.

    Args:
        text: Sanitized message text

    Returns:
        True if the text is exactly six ASCII digits
    """
    if not text:
        return False
    return bool(_CODE_PATTERN.fullmatch(text))


def parse_command(text: str) -> Tuple[str, str]:
    """
    Splits a message into a lower-cased command word and the remainder.

    Args:
        text: Sanitized message text

    Returns:
        (command, arguments), e.g. ("/order", "12345")
    """
    parts = text.split(None, 1)
    if not parts:
        return "", ""
    command = parts[0].lower()
    arguments = parts[1] if len(parts) > 1 else ""
    return command, arguments


def parse_order_id(arguments: str) -> str:
    """
    Extracts the order id from /order arguments.

    The id is the first whitespace-delimited token.

    Raises:
        InvalidInputError: If no id was given
    """
    tokens = arguments.split()
    if not tokens:
        raise InvalidInputError("Order ID is required", details={"usage": "/order <id>"})
    return tokens[0]
