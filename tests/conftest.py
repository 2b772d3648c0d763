import fakeredis
import pytest
from fastapi.testclient import TestClient

from app import app
from backend import RedisBackend, get_redis_backend
from constants import TOKEN_HEADER
from services.messages import MessageLogCoordinator
from services.rooms import RoomLifecycleManager
from services.tokens import TokenIssuer
from schemas.events import parse_room_event


@pytest.fixture
def redis_client():
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def backend(redis_client):
    return RedisBackend(redis_client)


@pytest.fixture
def issuer():
    return TokenIssuer(secret="test-secret")


@pytest.fixture
def rooms(backend, issuer):
    return RoomLifecycleManager(backend, issuer, lifetime_seconds=600)


@pytest.fixture
def messages(backend, rooms):
    return MessageLogCoordinator(backend, rooms)


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_redis_backend] = lambda: backend
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(token):
    return {TOKEN_HEADER: token}


def next_event(pubsub, attempts=20):
    """Wait for the next published event on a pubsub subscription."""
    for _ in range(attempts):
        message = pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1)
        if message:
            return parse_room_event(message["data"])
    return None
