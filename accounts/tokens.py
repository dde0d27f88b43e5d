"""
Access/refresh token issuance, verification and rotation.

Tokens are HS256 JWTs carrying the public projection of the user under the
``user`` claim. The signed JWT string is then encrypted with the field cipher
before it leaves the service, so clients only ever see the ciphertext.

The encrypted refresh token is also stored on the user record. Only the most
recently issued one verifies: issuing a new refresh token overwrites the
stored value, which is what invalidates the previous one.
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, NamedTuple, Optional

import jwt
import structlog

from accounts.crypto import CipherError, FieldCipher
from accounts.models import UserRecord
from accounts.store import CredentialStore
from utilities.config import SecurityConfig
from utilities.errors import InvalidTokenError, NotFound, TokenExpiredError

logger = structlog.get_logger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class RefreshGrant(NamedTuple):
    """Result of verifying a refresh token: the session owner and the token claims."""
    user: UserRecord
    claims: Dict[str, Any]


class Rotation(NamedTuple):
    user: UserRecord
    tokens: TokenPair


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Mint, verify, rotate and revoke tokens for users of a credential store."""

    def __init__(
        self,
        store: CredentialStore,
        security: SecurityConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.security = security
        self.cipher = FieldCipher.from_config(security)
        # only used to stamp iat/exp; expiry is checked against the wall clock
        self.clock = clock or _utcnow

    def _sign(self, user: UserRecord, kind: str) -> str:
        if kind == ACCESS:
            secret, ttl = self.security.access_token_secret, self.security.access_token_ttl
        else:
            secret, ttl = self.security.refresh_token_secret, self.security.refresh_token_ttl

        now = self.clock()
        payload = {
            "user": user.public().to_claims(),
            "typ": kind,
            "jti": secrets.token_hex(8),
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, secret, algorithm=self.security.jwt_algorithm)

    def _unwrap(self, encrypted_token: str, secret: str, kind: str) -> Dict[str, Any]:
        if not encrypted_token:
            raise InvalidTokenError("Token not provided")

        try:
            signed = self.cipher.decrypt(encrypted_token)
        except CipherError:
            raise InvalidTokenError()

        try:
            claims = jwt.decode(signed, secret, algorithms=[self.security.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.PyJWTError:
            raise InvalidTokenError()

        user_claim = claims.get("user")
        if claims.get("typ") != kind or not isinstance(user_claim, dict) or not user_claim.get("id"):
            raise InvalidTokenError("Invalid token payload")
        return claims

    def issue_access_token(self, user: UserRecord) -> str:
        """Signed, short-lived token wrapped in the field cipher."""
        return self.cipher.encrypt(self._sign(user, ACCESS))

    async def issue_refresh_token(self, user: UserRecord) -> str:
        """
        Signed, long-lived token wrapped in the field cipher and stored on the
        user record, replacing any previous one.
        """
        encrypted = self.cipher.encrypt(self._sign(user, REFRESH))
        if not await self.store.set_refresh_token(user.id, encrypted):
            raise NotFound(f"User with ID {user.id} not found")
        logger.debug("Refresh token issued", user_id=user.id)
        return encrypted

    async def issue_pair(self, user: UserRecord) -> TokenPair:
        refresh_token = await self.issue_refresh_token(user)
        return TokenPair(self.issue_access_token(user), refresh_token)

    def verify_access_token(self, encrypted_token: str) -> Dict[str, Any]:
        """
        Decrypt and verify an access token, returning its claims.

        Raises:
            TokenExpiredError: Signature is valid but the token has expired.
            InvalidTokenError: Decryption, signature or payload check failed.
        """
        return self._unwrap(encrypted_token, self.security.access_token_secret, ACCESS)

    async def verify_refresh_token(self, encrypted_token: str) -> RefreshGrant:
        """
        Verify a refresh token against the one stored for its owner.

        The presented ciphertext must equal the stored value byte for byte.
        """
        if not encrypted_token:
            raise InvalidTokenError("Refresh token not provided")

        user = await self.store.find_by_refresh_token(encrypted_token)
        if user is None:
            logger.warning("Refresh token does not match any active session")
            raise InvalidTokenError()

        claims = self._unwrap(encrypted_token, self.security.refresh_token_secret, REFRESH)
        if claims["user"]["id"] != user.id:
            raise InvalidTokenError()
        return RefreshGrant(user, claims)

    async def rotate(self, encrypted_token: str) -> Rotation:
        """
        Exchange a valid refresh token for a new pair.

        The stored token is replaced only if it still equals the presented one,
        so of two concurrent refreshes with the same token exactly one wins.
        """
        grant = await self.verify_refresh_token(encrypted_token)
        user = grant.user

        new_refresh = self.cipher.encrypt(self._sign(user, REFRESH))
        if not await self.store.replace_refresh_token(user.id, encrypted_token, new_refresh):
            logger.warning("Refresh token was rotated concurrently", user_id=user.id)
            raise InvalidTokenError("Refresh token has already been used")

        rotated = user.model_copy(update={"refresh_token": new_refresh})
        pair = TokenPair(self.issue_access_token(rotated), new_refresh)
        logger.debug("Refresh token rotated", user_id=user.id)
        return Rotation(rotated, pair)

    async def revoke(self, user: UserRecord) -> None:
        """Clear the stored refresh token, ending the user's session."""
        if not await self.store.set_refresh_token(user.id, None):
            raise NotFound(f"User with ID {user.id} not found")
        logger.debug("Refresh token revoked", user_id=user.id)
