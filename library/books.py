"""
Book catalog repository: browsing, filtering and download tracking.
"""

import math
import re
from typing import Any, Dict, List

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from library.database import parse_object_id
from library.models import BookListResponse, BookQueryParams, BookResponse
from utilities.errors import NotFound

logger = structlog.get_logger(__name__)


class BookRepository:
    """Read-mostly access to the books collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    @staticmethod
    def build_filter(query_params: BookQueryParams) -> Dict[str, Any]:
        """
        Build the MongoDB filter for a listing query.

        Title and author are matched case-insensitively as substrings; the
        language must be one of the book's languages.
        """
        filter_query: Dict[str, Any] = {}

        if query_params.title:
            filter_query["title"] = {"$regex": re.escape(query_params.title), "$options": "i"}

        if query_params.author:
            filter_query["authors.name"] = {"$regex": re.escape(query_params.author), "$options": "i"}

        filter_query["languages"] = {"$in": [query_params.language]}
        return filter_query

    async def find_books(self, query_params: BookQueryParams) -> BookListResponse:
        """
        Get books with filtering, title ordering and pagination.

        Args:
            query_params: Query parameters for filtering and pagination

        Returns:
            BookListResponse with paginated results
        """
        filter_query = self.build_filter(query_params)
        skip = (query_params.page - 1) * query_params.limit

        try:
            total = await self.collection.count_documents(filter_query)
            cursor = (
                self.collection.find(filter_query)
                .sort("title", 1)
                .skip(skip)
                .limit(query_params.limit)
            )
            documents = await cursor.to_list(length=query_params.limit)
        except Exception as e:
            logger.error("Failed to get books", error=str(e), query_params=query_params.model_dump())
            raise

        return BookListResponse(
            total_books=total,
            total_pages=math.ceil(total / query_params.limit),
            page=query_params.page,
            limit=query_params.limit,
            language=query_params.language,
            books=[BookResponse.from_document(document) for document in documents],
        )

    async def get_book(self, book_id: str) -> BookResponse:
        document = await self.collection.find_one({"_id": parse_object_id(book_id)})
        if document is None:
            raise NotFound(f"Book with ID {book_id} not found")
        return BookResponse.from_document(document)

    async def increment_downloads(self, book_id: str) -> BookResponse:
        """Atomically add one to the download counter."""
        document = await self.collection.find_one_and_update(
            {"_id": parse_object_id(book_id)},
            {"$inc": {"downloads": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise NotFound(f"Book with ID {book_id} not found")

        logger.debug("Book downloads incremented", book_id=book_id, downloads=document.get("downloads"))
        return BookResponse.from_document(document)

    async def _distinct_unwound(self, array_field: str, value_path: str) -> List[str]:
        pipeline = [
            {"$unwind": f"${array_field}"},
            {"$group": {"_id": f"${value_path}"}},
            {"$sort": {"_id": 1}},
        ]
        rows = await self.collection.aggregate(pipeline).to_list(length=None)
        return [row["_id"] for row in rows]

    async def distinct_languages(self) -> List[str]:
        return await self._distinct_unwound("languages", "languages")

    async def distinct_content_types(self) -> List[str]:
        return await self._distinct_unwound("formats", "formats.content_type")
