"""HTTP routers, one module per resource."""

from api.routes import auth, books, reports, users

__all__ = ["auth", "books", "reports", "users"]
