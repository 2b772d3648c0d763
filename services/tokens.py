import hashlib
import uuid
from typing import Optional

from jose import JWTError, jwt

from constants import TOKEN_SECRET, TOKEN_ALGORITHM
from exceptions import AuthError
from logging_config import get_logger

logger = get_logger(__name__)


def hash_token(token: str) -> str:
    """Stable fingerprint of a token, safe to persist next to messages."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenIssuer:
    """Mints and decodes room capability tokens.

    A token is a signed JWT carrying the room id and a random token id. It has no
    ``exp`` claim: a token dies with its room, and whether the room still exists is
    checked by the caller against the store, not here.
    """

    def __init__(self, secret: str = TOKEN_SECRET, algorithm: str = TOKEN_ALGORITHM):
        self.secret = secret
        self.algorithm = algorithm

    def issue(self, room_id: str) -> tuple[str, str]:
        """Return ``(token, token_id)`` bound to ``room_id``."""
        token_id = uuid.uuid4().hex
        token = jwt.encode({"room_id": room_id, "jti": token_id}, self.secret, algorithm=self.algorithm)
        logger.debug(f"Issued token {token_id} for room {room_id}")
        return token, token_id

    def validate(self, token: Optional[str]) -> str:
        """Decode ``token`` and return the room id it is bound to."""
        if not token:
            raise AuthError("Missing token")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise AuthError("Invalid token")

        room_id = payload.get("room_id")
        if not isinstance(room_id, str) or not room_id:
            raise AuthError("Invalid token payload")
        return room_id
