import redis
import json
from typing import Optional
from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from redis_keys import REDIS_META_KEY, REDIS_MESSAGES_KEY, REDIS_TOKEN_KEY, REDIS_ROOM_CHANNEL
from logging_config import get_logger

logger = get_logger(__name__)


def connect_redis() -> redis.Redis:
    try:
        client = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, password=REDIS_PASSWORD, decode_responses=True)
        # Test connection
        client.ping()
        logger.info(f"Redis client connected successfully to {REDIS_HOST}:{REDIS_PORT}")
        return client
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        raise


class RedisBackend:
    """Thin wrapper over the Redis primitives the room services need.

    Every method is a single round trip (or a short sequence of them); nothing here
    retries, so connection errors propagate to the caller as ``redis.RedisError``.
    """

    def __init__(self, redis_client: redis.Redis, pubsub_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client
        # Separate connection for pub/sub (required by Redis)
        self.pubsub_client = pubsub_client or redis_client

    # -- room metadata --

    def create_room(self, room_id: str, room_data: dict, ttl: int):
        logger.info(f"Creating room {room_id} with TTL {ttl} seconds")
        key = REDIS_META_KEY.format(slug=room_id)
        self.redis_client.hset(key, mapping={k: str(v) for k, v in room_data.items()})
        self.redis_client.expire(key, ttl)
        logger.debug(f"Room {room_id} created successfully with key: {key}")
        return room_id

    def get_room(self, room_id: str) -> Optional[dict]:
        logger.debug(f"Fetching room {room_id}")
        room_data = self.redis_client.hgetall(REDIS_META_KEY.format(slug=room_id))
        if not room_data:
            logger.debug(f"Room {room_id} not found in Redis")
            return None
        return room_data

    def room_exists(self, room_id: str) -> bool:
        return bool(self.redis_client.exists(REDIS_META_KEY.format(slug=room_id)))

    def get_room_ttl(self, room_id: str) -> int:
        """Remaining lifetime of the meta key. -2 when the key is gone, -1 when it has no expiry."""
        return self.redis_client.ttl(REDIS_META_KEY.format(slug=room_id))

    def delete_room(self, room_id: str) -> int:
        """Delete metadata, message log and token record in one DEL."""
        logger.info(f"Deleting room {room_id}")
        deleted = self.redis_client.delete(
            REDIS_META_KEY.format(slug=room_id),
            REDIS_MESSAGES_KEY.format(slug=room_id),
            REDIS_TOKEN_KEY.format(slug=room_id),
        )
        logger.debug(f"Room {room_id} deleted: {deleted} keys removed")
        return deleted

    # -- capability token record --

    def store_token(self, room_id: str, token_id: str, ttl: int):
        key = REDIS_TOKEN_KEY.format(slug=room_id)
        self.redis_client.set(key, token_id, ex=ttl)
        logger.debug(f"Stored token record for room {room_id} with TTL {ttl}")

    # -- message log --

    def append_message(self, room_id: str, message: dict) -> int:
        key = REDIS_MESSAGES_KEY.format(slug=room_id)
        length = self.redis_client.rpush(key, json.dumps(message))
        logger.debug(f"Appended message to {key}, log length {length}")
        return length

    def get_messages(self, room_id: str) -> list:
        key = REDIS_MESSAGES_KEY.format(slug=room_id)
        messages = []
        for raw in self.redis_client.lrange(key, 0, -1):
            try:
                messages.append(json.loads(raw))
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Skipping unreadable entry in {key}")
        return messages

    def sync_room_ttl(self, room_id: str, ttl: int):
        """Align the message log and token record expiry with the room's remaining TTL."""
        self.redis_client.expire(REDIS_MESSAGES_KEY.format(slug=room_id), ttl)
        self.redis_client.expire(REDIS_TOKEN_KEY.format(slug=room_id), ttl)
        logger.debug(f"Synchronized TTL of room {room_id} records to {ttl} seconds")

    # -- pub/sub --

    def get_room_channel_name(self, room_id: str) -> str:
        """Get the Redis pub/sub channel name for a room."""
        return REDIS_ROOM_CHANNEL.format(slug=room_id)

    def publish_message(self, room_id: str, message: dict) -> int:
        """Publish a message to the room's Redis pub/sub channel."""
        channel = self.get_room_channel_name(room_id)
        subscribers = self.redis_client.publish(channel, json.dumps(message))
        logger.debug(f"Published message to room {room_id} channel {channel}, {subscribers} subscribers")
        return subscribers

    def subscribe_to_room(self, room_id: str):
        """Create a pubsub subscriber for a room channel."""
        channel = self.get_room_channel_name(room_id)
        logger.debug(f"Subscribing to Redis channel {channel} for room {room_id}")
        pubsub = self.pubsub_client.pubsub()
        pubsub.subscribe(channel)
        return pubsub

    def ping(self) -> bool:
        return bool(self.redis_client.ping())


_redis_backend: Optional[RedisBackend] = None


def get_redis_backend() -> RedisBackend:
    """FastAPI dependency returning the process-wide backend, connecting on first use."""
    global _redis_backend
    if _redis_backend is None:
        logger.info(f"Initializing RedisBackend with connection to {REDIS_HOST}:{REDIS_PORT}")
        _redis_backend = RedisBackend(connect_redis(), connect_redis())
    return _redis_backend
