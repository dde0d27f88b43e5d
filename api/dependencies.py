"""
Service wiring for request handlers.

The application lifespan builds one ``ServiceContainer`` and stores it in the
module-level ``services``; handlers reach it through ``get_services``.
"""

from dataclasses import dataclass
from typing import Optional

from accounts.service import AuthService
from accounts.store import CredentialStore
from accounts.tokens import TokenService
from library.books import BookRepository
from library.database import MongoDBManager
from library.reports import ReportGenerator
from utilities.config import SecurityConfig
from utilities.errors import InternalError


@dataclass
class ServiceContainer:
    store: CredentialStore
    tokens: TokenService
    auth: AuthService
    books: BookRepository
    reports: ReportGenerator
    db_manager: Optional[MongoDBManager] = None

    @classmethod
    def build(cls, users, books, security: SecurityConfig, db_manager: Optional[MongoDBManager] = None) -> "ServiceContainer":
        """Construct every service over the given users/books collections."""
        store = CredentialStore(users, security)
        tokens = TokenService(store, security)
        return cls(
            store=store,
            tokens=tokens,
            auth=AuthService(store, tokens),
            books=BookRepository(books),
            reports=ReportGenerator(books, users),
            db_manager=db_manager,
        )


# Global service container, set by the application lifespan
services: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    if services is None:
        raise InternalError("Database service not available")
    return services
