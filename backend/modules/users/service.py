"""
User store facade.

Writes go to the identity provider and, concurrently, to the relational
mirror. The identity provider's result is authoritative: mirror failures
are logged and reported, never raised.
"""

import asyncio
import logging
from typing import Any, Optional

from cachetools import TTLCache

from shared.exceptions import DataInconsistencyError
from shared.reporting import report_error

from .identity import Auth0Client
from .interfaces import IUserService
from .exceptions import DuplicateUserError
from .mirror import UserMirrorRepository
from .models import User

logger = logging.getLogger(__name__)

# How long a bearer token -> user id lookup is trusted
TOKEN_CACHE_TTL_SECONDS = 60 * 60
TOKEN_CACHE_SIZE = 10_000


class UserService(IUserService):
    """
    Facade over the Auth0 user store and its Supabase mirror.

    The token cache is per process. In a multi-instance deployment each
    instance warms its own cache.
    """

    def __init__(
        self,
        identity: Auth0Client,
        mirror: Optional[UserMirrorRepository] = None,
    ):
        self._identity = identity
        self._mirror = mirror
        self._token_cache: TTLCache[str, str] = TTLCache(maxsize=TOKEN_CACHE_SIZE, ttl=TOKEN_CACHE_TTL_SECONDS)

    async def _mirror_call(self, description: str, fn, *args) -> Any:
        """Run a blocking mirror operation off the event loop, reporting failures."""
        if self._mirror is None:
            return None
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            logger.error(f"Error {description} in DB: {e}")
            report_error(e, operation=description)
            return None

    async def get_user(self, user_id: str) -> User:
        user = await self._identity.get_user(user_id)
        await self._check_mirror(user)
        return user

    async def _check_mirror(self, user: User) -> None:
        """Compare the primary record to the mirror and report any divergence."""
        if self._mirror is None:
            return

        mirrored = await self._mirror_call(
            "reading user", self._mirror.get_by_auth0_id, user.user_id
        )
        if mirrored is None:
            report_error(
                DataInconsistencyError(f"User {user.user_id} exists in Auth0 but not in DB")
            )
            return

        if mirrored.email != user.email:
            report_error(
                DataInconsistencyError(
                    f"User {user.user_id} email mismatch between Auth0 ({user.email}) "
                    f"and DB ({mirrored.email})"
                )
            )

        if mirrored.app_metadata != user.app_metadata:
            keys = set(mirrored.app_metadata) | set(user.app_metadata)
            diff = {
                key: {"from": mirrored.app_metadata.get(key), "to": user.app_metadata.get(key)}
                for key in sorted(keys)
                if mirrored.app_metadata.get(key) != user.app_metadata.get(key)
            }
            report_error(
                DataInconsistencyError(
                    f"User {user.user_id} app_metadata mismatch between Auth0 and DB",
                    details={"diff": diff},
                )
            )

    async def get_users_by_email(self, email: str) -> list[User]:
        return await self._identity.get_users_by_email(email)

    async def create_user(
        self,
        email: str,
        app_metadata: Optional[dict[str, Any]] = None,
    ) -> User:
        app_metadata = app_metadata or {}
        user = await self._identity.create_user(email, app_metadata)
        logger.info(f"Created user {user.user_id} for {email}")

        if self._mirror is not None:
            await self._mirror_call(
                "creating user", self._mirror.insert, user.user_id, email, app_metadata
            )
        return user

    async def get_or_create_user(self, email: str) -> User:
        users = await self._identity.get_users_by_email(email)

        if len(users) > 1:
            raise DuplicateUserError(email, len(users))
        if users:
            user = users[0]
            if self._mirror is not None:
                mirrored = await self._mirror_call(
                    "looking up user", self._mirror.get_by_email, email
                )
                if mirrored is None:
                    await self._mirror_call(
                        "auto-creating user",
                        self._mirror.insert,
                        user.user_id,
                        email,
                        user.app_metadata,
                    )
            return user

        return await self.create_user(email)

    async def update_user_metadata(self, user_id: str, patch: dict[str, Any]) -> None:
        primary = self._identity.update_app_metadata(user_id, patch)

        if self._mirror is None:
            await primary
            return

        mirror = self._mirror_call(
            "updating user metadata", self._mirror.merge_app_metadata, user_id, patch
        )
        await asyncio.gather(primary, mirror)

    async def get_team_members(self, owner_id: str) -> list[User]:
        return await self._identity.search_users(
            f'app_metadata.subscription_owner_id:"{owner_id}"'
        )

    async def get_user_id_for_token(self, access_token: str) -> str:
        cached = self._token_cache.get(access_token)
        if cached:
            return cached

        user_id = await self._identity.get_user_id_for_token(access_token)
        self._token_cache[access_token] = user_id
        logger.debug(f"Looked up user id {user_id} from token")
        return user_id
