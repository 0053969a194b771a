# tuneserver/relay.py
import logging
import threading
from typing import Optional
from fastapi import Request

from tuneserver.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class TokenRelay:
    """
    Holds one externally supplied access token in process memory.

    The frontend hands over the music provider token after its own OAuth
    flow and other clients pick it up. Each store overwrites the previous
    value (last writer wins) and nothing survives a restart.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._token: Optional[str] = None

    def store(self, token: Optional[str]) -> None:
        if not token:
            raise ValidationError("Token is missing!")
        with self._lock:
            self._token = token
        logger.info("Relay token stored (%d chars)", len(token))

    def fetch(self) -> str:
        with self._lock:
            token = self._token
        if token is None:
            raise NotFoundError("No token stored!")
        return token


def get_token_relay(request: Request) -> TokenRelay:
    return request.app.state.token_relay
