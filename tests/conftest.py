"""
Pytest configuration and shared fixtures.
"""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from accounts.models import Role
from accounts.service import AuthService
from accounts.store import CredentialStore
from accounts.tokens import TokenService
from api.dependencies import ServiceContainer
from api.main import app
from library.books import BookRepository
from library.reports import ReportGenerator
from utilities.config import SecurityConfig


class InMemoryCursor:
    """Enough of a motor cursor for sort/skip/limit/to_list chains."""

    def __init__(self, documents):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        self._documents = sorted(self._documents, key=lambda document: document[key], reverse=direction == -1)
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    async def to_list(self, length=None):
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[:self._limit]
        return [copy.deepcopy(document) for document in documents]


class InMemoryCollection:
    """
    Async stand-in for a motor collection: equality filters and the
    ``$set``/``$unset``/``$inc`` update operators.
    """

    def __init__(self, unique_fields=("email",)):
        self.documents = []
        self.unique_fields = unique_fields

    @staticmethod
    def _matches(document, filter_query):
        return all(document.get(key) == value for key, value in (filter_query or {}).items())

    @staticmethod
    def _apply(document, update):
        for key, value in update.get("$set", {}).items():
            document[key] = value
        for key in update.get("$unset", {}):
            document.pop(key, None)
        for key, value in update.get("$inc", {}).items():
            document[key] = document.get(key, 0) + value

    def _first(self, filter_query):
        for document in self.documents:
            if self._matches(document, filter_query):
                return document
        return None

    async def create_index(self, *args, **kwargs):
        return "index"

    async def insert_one(self, document):
        for field in self.unique_fields:
            if any(existing.get(field) == document.get(field) for existing in self.documents):
                raise DuplicateKeyError(f"E11000 duplicate key error on {field}", code=11000)
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, filter_query=None, projection=None):
        document = self._first(filter_query)
        return copy.deepcopy(document) if document else None

    def find(self, filter_query=None, projection=None):
        return InMemoryCursor([d for d in self.documents if self._matches(d, filter_query)])

    async def find_one_and_update(self, filter_query, update, return_document=None):
        document = self._first(filter_query)
        if document is None:
            return None
        self._apply(document, update)
        return copy.deepcopy(document)

    async def find_one_and_delete(self, filter_query):
        document = self._first(filter_query)
        if document is None:
            return None
        self.documents.remove(document)
        return document

    async def update_one(self, filter_query, update):
        document = self._first(filter_query)
        if document is not None:
            self._apply(document, update)
        matched = 1 if document is not None else 0
        return SimpleNamespace(matched_count=matched, modified_count=matched)

    async def count_documents(self, filter_query, limit=0):
        count = sum(1 for document in self.documents if self._matches(document, filter_query))
        return min(count, limit) if limit else count

    def set_fields(self, filter_query, **fields):
        """Test helper: edit a stored document in place."""
        self._first(filter_query).update(fields)


class FakeClock:
    """Controllable issue-time clock for the token service."""

    def __init__(self):
        self.offset = timedelta(0)

    def __call__(self):
        return datetime.now(timezone.utc) + self.offset

    def rewind(self, **delta):
        self.offset = -timedelta(**delta)

    def reset(self):
        self.offset = timedelta(0)


@pytest.fixture
def security_config():
    """Crypto configuration with fixed test material."""
    return SecurityConfig(
        encryption_key=b"k" * 32,
        encryption_iv=b"i" * 16,
        access_token_secret="test-access-token-secret-0123456789abcdef",
        refresh_token_secret="test-refresh-token-secret-0123456789abcdef",
    )


@pytest.fixture
def users_collection():
    return InMemoryCollection()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(users_collection, security_config):
    return CredentialStore(users_collection, security_config)


@pytest.fixture
def token_service(store, security_config, clock):
    return TokenService(store, security_config, clock=clock)


@pytest.fixture
def auth_service(store, token_service):
    return AuthService(store, token_service)


@pytest.fixture
def make_user(store):
    """Factory creating users through the credential store."""
    async def _make(fullname="Jane Doe", email="jane@x.com", password="Secret123!", role=Role.USER):
        return await store.create({"fullname": fullname, "email": email, "password": password, "role": role})
    return _make


@pytest.fixture
def services(users_collection, security_config, clock):
    """Service container over the in-memory users collection and mocked catalog."""
    container = ServiceContainer.build(users_collection, AsyncMock(), security_config)
    container.tokens.clock = clock
    container.books = AsyncMock(spec=BookRepository)
    container.reports = AsyncMock(spec=ReportGenerator)
    return container


@pytest.fixture
def client(services):
    """Test client wired to the in-memory services; https so secure cookies round-trip."""
    with patch("api.dependencies.services", services):
        yield TestClient(app, base_url="https://testserver")


@pytest.fixture
def sample_book_document():
    """A book document in the stored catalog shape."""
    return {
        "_id": ObjectId("64b7f0c2a1b2c3d4e5f60718"),
        "gutenberg_id": 2000,
        "title": "Don Quijote",
        "authors": [{"name": "Cervantes Saavedra, Miguel de", "birth_year": 1547, "death_year": 1616}],
        "translators": [],
        "type": "Text",
        "subjects": ["Knights and knighthood -- Spain -- Fiction"],
        "languages": ["es"],
        "formats": [
            {"content_type": "application/epub+zip", "url": "https://www.gutenberg.org/ebooks/2000.epub3.images"},
            {"content_type": "image/jpeg", "url": "https://www.gutenberg.org/cache/epub/2000/pg2000.cover.medium.jpg"},
            {"content_type": "text/plain; charset=us-ascii", "url": "https://www.gutenberg.org/ebooks/2000.txt.utf-8"},
        ],
        "downloads": 12345,
        "bookshelves": ["Best Books Ever Listings"],
        "copyright": False,
    }
