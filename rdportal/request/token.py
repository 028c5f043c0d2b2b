"""Handle tokens and the object paths the broker derives from them"""

from __future__ import annotations

import itertools
import re
import secrets
import threading
from dataclasses import dataclass
from typing import Optional

from rdportal.common.errors import InvalidTokenError
from rdportal.common.settings import settings
from rdportal.common.types import ObjectPath

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

_counter = itertools.count(1)
_counter_lock = threading.Lock()


@dataclass(frozen=True)
class HandleToken:
    """Last path segment of a request or session object"""
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _TOKEN_PATTERN.match(self.value):
            raise InvalidTokenError(str(self.value))

    @classmethod
    def from_string(cls, value: str) -> "HandleToken":
        """
        Accept a caller-chosen token

        Raises:
            InvalidTokenError: If value is not a valid object path segment
        """
        return cls(value)

    def __str__(self) -> str:
        return self.value


def new_token(prefix: Optional[str] = None) -> HandleToken:
    """
    Generate a token distinct from every other token issued by this process

    Args:
        prefix: Token prefix, defaults to the configured one

    Returns:
        Fresh handle token
    """
    with _counter_lock:
        serial = next(_counter)
    suffix = secrets.token_hex(settings.TOKEN_RANDOM_HEX_DIGITS // 2)
    return HandleToken(f"{prefix or settings.token_prefix}_{serial}_{suffix}")


def senderSegment_get(unique_name: str) -> str:
    """
    Escape a unique bus name (":1.42") into a path segment ("1_42")
    """
    return unique_name.lstrip(":").replace(".", "_")


def requestPath_get(unique_name: str, token: HandleToken) -> ObjectPath:
    """Object path of the Request the broker creates for token"""
    return ObjectPath(f"{settings.REQUEST_PATH_PREFIX}/{senderSegment_get(unique_name)}/{token.value}")


def sessionPath_get(unique_name: str, token: HandleToken) -> ObjectPath:
    """Object path of the Session the broker creates for token"""
    return ObjectPath(f"{settings.SESSION_PATH_PREFIX}/{senderSegment_get(unique_name)}/{token.value}")
