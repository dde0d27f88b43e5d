"""
Reporting aggregations over the catalog and the user base.
"""

from typing import Any, Dict, List

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

TOP_BOOKS_LIMIT = 10


class TopBookEntry(BaseModel):
    id: str = Field(..., description="Book identifier")
    title: str = Field(..., description="Book title")
    downloads: int = Field(..., description="Download count")
    percentage: float = Field(..., description="Share of the listed books' downloads, in percent")


class LanguageCount(BaseModel):
    language: str
    books: int


class MonthlySignups(BaseModel):
    month: str = Field(..., description="Month as YYYY-MM")
    signups: int


def rank_top_books(documents: List[Dict[str, Any]]) -> List[TopBookEntry]:
    """
    Attach to each book its share of the total downloads of ``documents``,
    rounded to two decimals. Shares are 0 when nothing has been downloaded.
    """
    total = sum(document.get("downloads") or 0 for document in documents)
    entries = []
    for document in documents:
        downloads = document.get("downloads") or 0
        percentage = round(downloads / total * 100, 2) if total else 0.0
        entries.append(TopBookEntry(
            id=str(document["_id"]),
            title=document.get("title", ""),
            downloads=downloads,
            percentage=percentage,
        ))
    return entries


class ReportGenerator:
    """Builds report data from the books and users collections."""

    def __init__(self, books: AsyncIOMotorCollection, users: AsyncIOMotorCollection):
        self.books = books
        self.users = users

    async def top_books(self, limit: int = TOP_BOOKS_LIMIT) -> List[TopBookEntry]:
        cursor = self.books.find({}, {"title": 1, "downloads": 1}).sort("downloads", -1).limit(limit)
        documents = await cursor.to_list(length=limit)
        return rank_top_books(documents)

    async def languages_distribution(self) -> List[LanguageCount]:
        pipeline = [
            {"$unwind": "$languages"},
            {"$group": {"_id": "$languages", "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        rows = await self.books.aggregate(pipeline).to_list(length=None)
        return [LanguageCount(language=row["_id"], books=row["count"]) for row in rows]

    async def monthly_signups(self) -> List[MonthlySignups]:
        pipeline = [
            {"$match": {"created_at": {"$exists": True}}},
            {"$group": {
                "_id": {"$dateToString": {"format": "%Y-%m", "date": "$created_at"}},
                "count": {"$sum": 1},
            }},
            {"$sort": {"_id": 1}},
        ]
        rows = await self.users.aggregate(pipeline).to_list(length=None)
        return [MonthlySignups(month=row["_id"], signups=row["count"]) for row in rows]
