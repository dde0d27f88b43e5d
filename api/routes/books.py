"""
Book catalog endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from api.dependencies import ServiceContainer, get_services
from api.models import DataResponse
from library.models import BookListResponse, BookQueryParams

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("", response_model=BookListResponse)
async def get_books(
    title: Optional[str] = None,
    author: Optional[str] = None,
    language: str = "es",
    page: int = Query(1, ge=1),
    limit: int = Query(5, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    """
    Get books with filtering and pagination, ordered by title.

    - **title**: Case-insensitive title filter
    - **author**: Case-insensitive author name filter
    - **language**: Language code the book must include (default `es`)
    - **page**: Page number (starts from 1)
    - **limit**: Items per page (1-100)
    """
    query_params = BookQueryParams(title=title, author=author, language=language, page=page, limit=limit)
    result = await services.books.find_books(query_params)
    if not result.books:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return result


@router.get("/languages", response_model=DataResponse)
async def get_languages(services: ServiceContainer = Depends(get_services)):
    return DataResponse(data=await services.books.distinct_languages())


@router.get("/content-types", response_model=DataResponse)
async def get_content_types(services: ServiceContainer = Depends(get_services)):
    return DataResponse(data=await services.books.distinct_content_types())


@router.get("/{book_id}", response_model=DataResponse)
async def get_book(book_id: str, services: ServiceContainer = Depends(get_services)):
    """
    Get a single book by ID.

    - **book_id**: MongoDB ObjectId of the book
    """
    book = await services.books.get_book(book_id)
    return DataResponse(data=book.model_dump())


@router.patch("/{book_id}/downloads", response_model=DataResponse)
async def increment_downloads(book_id: str, services: ServiceContainer = Depends(get_services)):
    book = await services.books.increment_downloads(book_id)
    return DataResponse(message="Book downloads incremented successfully", data=book.model_dump())
