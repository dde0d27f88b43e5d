"""
Pydantic models for the book catalog.
Documents follow the Project Gutenberg catalog shape.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

TEXT_CONTENT_TYPES = (
    "text/plain",
    "text/plain; charset=big5",
    "text/plain; charset=iso-8859-1",
    "text/plain; charset=iso-8859-15",
    "text/plain; charset=iso-8859-2",
    "text/plain; charset=iso-8859-3",
    "text/plain; charset=iso-8859-7",
    "text/plain; charset=us-ascii",
    "text/plain; charset=utf-16",
    "text/plain; charset=utf-8",
    "text/plain; charset=windows-1250",
    "text/plain; charset=windows-1251",
    "text/plain; charset=windows-1252",
    "text/plain; charset=windows-1253",
)

IMAGE_CONTENT_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/tiff",
    "image/svg+xml",
)


class Person(BaseModel):
    """Author or translator."""
    name: str = Field(..., description="Display name")
    birth_year: Optional[int] = Field(None, description="Year of birth")
    death_year: Optional[int] = Field(None, description="Year of death")


class BookFormat(BaseModel):
    """A downloadable rendition of a book."""
    content_type: str = Field(..., description="MIME type of the rendition")
    url: str = Field(..., description="Download URL")


class BookData(BaseModel):
    """Book document as stored in the books collection."""
    gutenberg_id: int = Field(..., gt=0, description="Project Gutenberg identifier")
    title: str = Field(..., description="Book title")
    authors: List[Person] = Field(default_factory=list)
    translators: List[Person] = Field(default_factory=list)
    type: str = Field(..., description="Gutenberg media type, e.g. Text")
    subjects: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    formats: List[BookFormat] = Field(default_factory=list)
    downloads: int = Field(default=0, ge=0, description="Download count")
    bookshelves: List[str] = Field(default_factory=list)
    copyright: Optional[bool] = None

    @field_validator("title", "type")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    def format_url(self, content_type: str) -> Optional[str]:
        """URL of the first format with exactly this content type."""
        for book_format in self.formats:
            if book_format.content_type == content_type:
                return book_format.url
        return None

    def first_format(self, content_types) -> Optional[BookFormat]:
        """First format whose content type is one of ``content_types``."""
        for book_format in self.formats:
            if book_format.content_type in content_types:
                return book_format
        return None


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    gutenberg_id: int = Field(..., description="Project Gutenberg identifier")
    title: str = Field(..., description="Book title")
    authors: List[Person] = Field(..., description="Authors")
    cover: Optional[BookFormat] = Field(None, description="First image rendition")
    content: Optional[BookFormat] = Field(None, description="First plain-text rendition")
    downloads: int = Field(0, description="Download count")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookResponse":
        book = BookData(**{k: v for k, v in document.items() if k != "_id"})
        return cls(
            id=str(document["_id"]),
            gutenberg_id=book.gutenberg_id,
            title=book.title,
            authors=book.authors,
            cover=book.first_format(IMAGE_CONTENT_TYPES),
            content=book.first_format(TEXT_CONTENT_TYPES),
            downloads=book.downloads,
        )


class BookQueryParams(BaseModel):
    """Query parameters for book listing."""
    title: Optional[str] = Field(None, description="Case-insensitive title filter")
    author: Optional[str] = Field(None, description="Case-insensitive author name filter")
    language: str = Field("es", description="Language code the book must include")
    page: int = Field(1, ge=1, description="Page number")
    limit: int = Field(5, ge=1, le=100, description="Items per page")


class BookListResponse(BaseModel):
    """Response model for book list with pagination."""
    total_books: int = Field(..., description="Total number of matching books")
    total_pages: int = Field(..., description="Total number of pages")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of books per page")
    language: str = Field(..., description="Language filter applied")
    books: List[BookResponse] = Field(..., description="List of books")
