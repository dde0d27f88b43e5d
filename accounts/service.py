"""
Authentication workflows: signup, signin, refresh, signout, password change.
"""

from typing import NamedTuple, Optional

import structlog

from accounts.models import UserRecord
from accounts.store import CredentialStore
from accounts.tokens import Rotation, TokenPair, TokenService
from utilities.errors import NotFound, Unauthorized, ValidationError
from utilities.logger import mask_email

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class SignIn(NamedTuple):
    user: UserRecord
    tokens: TokenPair


class AuthService:
    """Orchestrates the credential store and token service for the auth endpoints."""

    def __init__(self, store: CredentialStore, tokens: TokenService):
        self.store = store
        self.tokens = tokens

    async def signup(self, fullname: Optional[str], email: Optional[str], password: Optional[str]) -> UserRecord:
        if not fullname or not email or not password:
            raise ValidationError("Fields are required")
        user = await self.store.create({"fullname": fullname, "email": email, "password": password})
        logger.info("Signup successful", user_id=user.id)
        return user

    async def signin(self, email: Optional[str], password: Optional[str]) -> SignIn:
        if not email or not password:
            raise ValidationError(INVALID_CREDENTIALS)

        user = await self.store.find_by_email(email)
        if user is None or not self.store.verify_password(user, password):
            logger.warning("Signin rejected", email=mask_email(email))
            raise Unauthorized(INVALID_CREDENTIALS)

        tokens = await self.tokens.issue_pair(user)
        logger.info("Signin successful", user_id=user.id)
        return SignIn(user.model_copy(update={"refresh_token": tokens.refresh_token}), tokens)

    async def refresh(self, refresh_token: Optional[str]) -> Rotation:
        if not refresh_token:
            raise Unauthorized("Refresh token not provided")
        rotation = await self.tokens.rotate(refresh_token)
        logger.info("Session refreshed", user_id=rotation.user.id)
        return rotation

    async def signout(self, user: UserRecord) -> None:
        if not user.has_active_session:
            raise NotFound("No active session")
        await self.tokens.revoke(user)
        logger.info("Signout successful", user_id=user.id)

    async def change_password(self, user: UserRecord, current_password: str, new_password: str) -> UserRecord:
        if not self.store.verify_password(user, current_password):
            logger.warning("Password change rejected", user_id=user.id)
            raise Unauthorized("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current password")
        return await self.store.change_password(user, new_password)
