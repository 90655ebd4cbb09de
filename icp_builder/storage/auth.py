"""
Bearer token verification.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

import structlog
from supabase import Client, create_client

from ..errors import AppError

logger = structlog.get_logger(__name__)


class Authenticator(ABC):
    """Verifies a bearer token and yields a stable user id"""

    @abstractmethod
    async def authenticate(self, token: str) -> str:
        """
        Raises:
            AppError: AUTHENTICATION kind when the token is not valid
        """


class InMemoryAuthenticator(Authenticator):
    """Static token -> user id map, for development and tests"""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self.tokens = dict(tokens or {})

    async def authenticate(self, token: str) -> str:
        user_id = self.tokens.get(token)
        if not user_id:
            raise AppError.authentication("Invalid or expired token")
        return user_id


class SupabaseAuthenticator(Authenticator):
    """Verifies tokens with Supabase Auth"""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        self.client = client or create_client(url, key)

    async def authenticate(self, token: str) -> str:
        try:
            response = await asyncio.to_thread(self.client.auth.get_user, token)
        except Exception as e:
            logger.warning("Token verification failed", error=str(e))
            raise AppError.authentication("Invalid or expired token")

        user = getattr(response, "user", None)
        if user is None:
            raise AppError.authentication("Invalid or expired token")
        return user.id
