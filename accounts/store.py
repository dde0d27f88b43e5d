"""
Credential store: at-rest representation of users and their credentials.

Emails and full names are encrypted before they reach MongoDB and decrypted
on the way out. Because the cipher is deterministic, an email lookup encrypts
the plaintext query value and matches on ciphertext; the unique index on
``email`` is likewise enforced on ciphertext.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError as PydanticValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from accounts.crypto import CipherError, FieldCipher, check_password, generate_salt, hash_password
from accounts.models import FULLNAME_MIN_LEN, Role, UserCreate, UserRecord, validate_password_strength
from library.database import parse_object_id
from utilities.config import SecurityConfig
from utilities.errors import Conflict, InternalError, NotFound, ValidationError
from utilities.logger import mask_email

logger = structlog.get_logger(__name__)

EMAIL_IN_USE = "The email address is already in use."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """
    Async store for user records backed by a MongoDB collection.

    Every read decrypts ``email`` and ``fullname``; every write encrypts them.
    """

    def __init__(self, collection: AsyncIOMotorCollection, security: SecurityConfig):
        self.collection = collection
        self.cipher = FieldCipher.from_config(security)

    async def ensure_indexes(self) -> None:
        """Create the indexes the store relies on."""
        await self.collection.create_index("email", unique=True)
        await self.collection.create_index("refresh_token", sparse=True)
        await self.collection.create_index("created_at")
        logger.info("User indexes ensured")

    # -- storage convention -------------------------------------------------

    def encrypt_for_storage(self, value: str) -> str:
        return self.cipher.encrypt(value)

    def decrypt_from_storage(self, value: str) -> str:
        try:
            return self.cipher.decrypt(value)
        except CipherError as e:
            logger.error("Failed to decrypt stored field", error=str(e))
            raise InternalError("Stored user data could not be decrypted") from e

    def _to_record(self, document: Dict[str, Any]) -> UserRecord:
        return UserRecord(
            id=str(document["_id"]),
            fullname=self.decrypt_from_storage(document["fullname"]),
            email=self.decrypt_from_storage(document["email"]),
            password=document["password"],
            salt=document["salt"],
            role=document.get("role", Role.USER.value),
            refresh_token=document.get("refresh_token"),
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )

    # -- lifecycle ------------------------------------------------------------

    async def create(self, candidate: Union[UserCreate, Dict[str, Any]]) -> UserRecord:
        """
        Persist a new user.

        Raises:
            ValidationError: Missing or malformed fields.
            Conflict: The email address is already registered.
        """
        if not isinstance(candidate, UserCreate):
            try:
                candidate = UserCreate(**candidate)
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid user data",
                    details=[err["msg"] for err in e.errors()],
                ) from e

        if await self.email_exists(candidate.email):
            raise Conflict(EMAIL_IN_USE)

        salt = generate_salt()
        now = _now()
        document = {
            "fullname": self.encrypt_for_storage(candidate.fullname),
            "email": self.encrypt_for_storage(candidate.email),
            "password": hash_password(candidate.password, salt),
            "salt": salt,
            "role": candidate.role.value,
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError:
            # another signup for the same email landed between the check and the insert
            raise Conflict(EMAIL_IN_USE)

        document["_id"] = result.inserted_id
        logger.info("User created", user_id=str(result.inserted_id), email=mask_email(candidate.email))
        return self._to_record(document)

    @staticmethod
    def verify_password(record: UserRecord, candidate_plaintext: str) -> bool:
        """True iff the candidate hashes to the stored password under the record's salt."""
        if not candidate_plaintext:
            return False
        return check_password(candidate_plaintext, record.salt, record.password)

    async def change_password(self, record: UserRecord, new_plaintext: str) -> UserRecord:
        """
        Regenerate the salt and store the hash of the new password.

        The caller is responsible for having re-verified the current password.
        """
        try:
            validate_password_strength(new_plaintext)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        salt = generate_salt()
        update = {
            "password": hash_password(new_plaintext, salt),
            "salt": salt,
            "updated_at": _now(),
        }
        result = await self.collection.update_one({"_id": parse_object_id(record.id)}, {"$set": update})
        if result.matched_count == 0:
            raise NotFound(f"User with ID {record.id} not found")

        logger.info("Password changed", user_id=record.id)
        return record.model_copy(update=update)

    async def delete(self, user_id: str) -> UserRecord:
        """Remove a user, returning the removed record."""
        document = await self.collection.find_one_and_delete({"_id": parse_object_id(user_id)})
        if document is None:
            raise NotFound(f"User with ID {user_id} not found")
        logger.info("User deleted", user_id=user_id)
        return self._to_record(document)

    async def update_profile(
        self,
        user_id: str,
        fullname: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> UserRecord:
        """
        Load, mutate and save profile fields.

        Not guarded against concurrent edits of the same record: the last save wins.
        """
        record = await self.find_by_id(user_id)
        if record is None:
            raise NotFound(f"User with ID {user_id} not found")

        update: Dict[str, Any] = {}
        if fullname is not None:
            if len(fullname.strip()) < FULLNAME_MIN_LEN:
                raise ValidationError(f"Fullname must be at least {FULLNAME_MIN_LEN} characters long")
            update["fullname"] = self.encrypt_for_storage(fullname.strip())
        if role is not None:
            update["role"] = Role(role).value
        if not update:
            raise ValidationError("No updates provided")

        update["updated_at"] = _now()
        await self.collection.update_one({"_id": parse_object_id(record.id)}, {"$set": update})
        logger.info("User updated", user_id=user_id, fields=sorted(update))

        return record.model_copy(update={
            "fullname": fullname.strip() if fullname is not None else record.fullname,
            "role": Role(role) if role is not None else record.role,
            "updated_at": update["updated_at"],
        })

    # -- lookups --------------------------------------------------------------

    async def find_by_email(self, plaintext_email: str) -> Optional[UserRecord]:
        if not plaintext_email:
            return None
        document = await self.collection.find_one(
            {"email": self.encrypt_for_storage(plaintext_email.strip())}
        )
        return self._to_record(document) if document else None

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        document = await self.collection.find_one({"_id": parse_object_id(user_id)})
        return self._to_record(document) if document else None

    async def email_exists(self, plaintext_email: str) -> bool:
        count = await self.collection.count_documents(
            {"email": self.encrypt_for_storage(plaintext_email.strip())}, limit=1
        )
        return count > 0

    async def list_users(self, page: int = 1, limit: int = 20) -> List[UserRecord]:
        skip = (max(page, 1) - 1) * limit
        cursor = self.collection.find({}).sort("created_at", 1).skip(skip).limit(limit)
        documents = await cursor.to_list(length=limit)
        return [self._to_record(document) for document in documents]

    async def count_users(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return await self.collection.count_documents(filters or {})

    # -- refresh token persistence -------------------------------------------

    async def find_by_refresh_token(self, encrypted_token: str) -> Optional[UserRecord]:
        if not encrypted_token:
            return None
        document = await self.collection.find_one({"refresh_token": encrypted_token})
        return self._to_record(document) if document else None

    async def set_refresh_token(self, user_id: str, encrypted_token: Optional[str]) -> bool:
        """Overwrite (or clear, when ``None``) the stored refresh token."""
        if encrypted_token is None:
            change = {"$unset": {"refresh_token": ""}, "$set": {"updated_at": _now()}}
        else:
            change = {"$set": {"refresh_token": encrypted_token, "updated_at": _now()}}
        result = await self.collection.update_one({"_id": parse_object_id(user_id)}, change)
        return result.matched_count > 0

    async def replace_refresh_token(self, user_id: str, expected: str, encrypted_token: str) -> bool:
        """
        Compare-and-swap the stored refresh token.

        Returns False when the stored value is no longer ``expected``.
        """
        document = await self.collection.find_one_and_update(
            {"_id": parse_object_id(user_id), "refresh_token": expected},
            {"$set": {"refresh_token": encrypted_token, "updated_at": _now()}},
            return_document=ReturnDocument.AFTER,
        )
        return document is not None
