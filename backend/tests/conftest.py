"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

# Route modules import the app's dependency wiring, so load the app first
import api.app  # noqa: F401

import copy
from typing import Any, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from api.dependencies import reset_container
from modules.users.exceptions import DuplicateUserError, UserNotFoundError
from modules.users.interfaces import IUserService
from modules.users.models import User
from shared.exceptions import AuthenticationError


class FakeUserService(IUserService):
    """
    In-memory user store.

    Applies metadata patches the way the identity provider does (None
    deletes a field) and records every write, so tests can assert on both
    the final state and the patches that produced it.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.tokens: dict[str, str] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.created: list[str] = []
        self._next_id = 1

    def add(self, email: str, app_metadata: Optional[dict[str, Any]] = None, user_id: Optional[str] = None) -> User:
        user_id = user_id or f"auth0|user{self._next_id}"
        self._next_id += 1
        user = User(user_id=user_id, email=email, app_metadata=copy.deepcopy(app_metadata or {}))
        self.users[user_id] = user
        return user

    def metadata(self, user_id: str) -> dict[str, Any]:
        return self.users[user_id].app_metadata

    async def get_user(self, user_id: str) -> User:
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        return copy.deepcopy(self.users[user_id])

    async def get_users_by_email(self, email: str) -> list[User]:
        return [copy.deepcopy(u) for u in self.users.values() if u.email.lower() == email.lower()]

    async def create_user(self, email: str, app_metadata: Optional[dict[str, Any]] = None) -> User:
        user = self.add(email, app_metadata)
        self.created.append(user.user_id)
        return copy.deepcopy(user)

    async def get_or_create_user(self, email: str) -> User:
        users = await self.get_users_by_email(email)
        if len(users) > 1:
            raise DuplicateUserError(email, len(users))
        if users:
            return users[0]
        return await self.create_user(email)

    async def update_user_metadata(self, user_id: str, patch: dict[str, Any]) -> None:
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        self.updates.append((user_id, copy.deepcopy(patch)))

        metadata = self.users[user_id].app_metadata
        for key, value in patch.items():
            if value is None:
                metadata.pop(key, None)
            else:
                metadata[key] = copy.deepcopy(value)

    async def get_team_members(self, owner_id: str) -> list[User]:
        return [
            copy.deepcopy(u)
            for u in self.users.values()
            if u.app_metadata.get("subscription_owner_id") == owner_id
        ]

    async def get_user_id_for_token(self, access_token: str) -> str:
        if access_token not in self.tokens:
            raise AuthenticationError("Invalid or expired token")
        return self.tokens[access_token]


class DummyAsyncClient:
    """
    Stand-in for httpx.AsyncClient.

    Pops queued responses in order and records every request made, as
    (method, url, kwargs) tuples. A queued exception is raised instead of
    returned.
    """

    def __init__(self, responses: list, requests: list) -> None:
        self._responses = responses
        self._requests = requests

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self._requests.append((method, url, kwargs))
        try:
            response = self._responses.pop(0)
        except IndexError as exc:
            raise AssertionError(f"Unexpected request: {method} {url}") from exc
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)


@pytest.fixture
def fake_http(monkeypatch):
    """
    Replace httpx.AsyncClient in a module with a DummyAsyncClient.

    Usage:
        requests = fake_http("modules.billing.paddle_client", [httpx.Response(200, json={...})])
    """

    def install(module: str, responses: list) -> list:
        queue = list(responses)
        requests: list = []
        monkeypatch.setattr(f"{module}.httpx.AsyncClient", lambda *args, **kwargs: DummyAsyncClient(queue, requests))
        return requests

    return install


@pytest.fixture(autouse=True)
def reset_services():
    """Reset the service container before and after each test."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def users() -> FakeUserService:
    """Provide an empty in-memory user store."""
    return FakeUserService()


@pytest.fixture(scope="session")
def rsa_key():
    """An RSA key pair, shared across the session since generation is slow."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture
def from_peer():
    """
    Wrap an ASGI app so requests arrive from the given socket peer.

    Usage:
        client = TestClient(from_peer(app, "10.0.0.2"))
    """

    def wrap(app, peer: str):
        async def asgi(scope, receive, send):
            if scope["type"] == "http":
                scope = {**scope, "client": (peer, 50000)}
            await app(scope, receive, send)

        return asgi

    return wrap
