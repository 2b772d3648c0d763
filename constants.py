import os
import secrets

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# Lifetime applied to every room, in seconds
ROOM_TTL_SECONDS = int(os.getenv("ROOM_TTL_SECONDS", 600))

# Shared by every instance behind the same Redis, otherwise tokens only validate where they were minted
TOKEN_SECRET = os.getenv("TOKEN_SECRET") or secrets.token_urlsafe(32)
TOKEN_SECRET_FROM_ENV = bool(os.getenv("TOKEN_SECRET"))
TOKEN_ALGORITHM = os.getenv("TOKEN_ALGORITHM", "HS256")
TOKEN_HEADER = "x-auth-token"

MAX_SENDER_LENGTH = 100
MAX_TEXT_LENGTH = 1000
