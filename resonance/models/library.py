"""
Book and archive records shared with the persistence layer
"""
from datetime import datetime, timezone
from typing import Any, Literal, Optional
import uuid

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BookRecord(BaseModel):
    """A book in someone's library (uploaded file or store/catalog copy)."""

    id: str
    owner_id: str
    title: str
    author: str = ""
    file_url: str = ""
    file_type: Literal["epub", "pdf"] = "epub"
    source: Literal["upload", "store"] = "upload"
    store_book_id: Optional[str] = None
    cover_url: Optional[str] = None

    def identity(self) -> "BookIdentity":
        return BookIdentity(store_book_id=self.store_book_id, title=self.title, author=self.author)


class BookIdentity(BaseModel):
    """
    Cross-account identity of a book: the store catalog id when there is one,
    otherwise title + author (uploads).
    """

    store_book_id: Optional[str] = None
    title: str = ""
    author: str = ""


class Artifact(BaseModel):
    """Persisted AI output: a series outline or one episode script."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner_id: str
    book_id: Optional[str] = None
    type: Literal["podcast-series", "podcast"]
    title: str
    content: dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=_now_iso)
    deleted_at: Optional[str] = None

    @property
    def tone_id(self) -> Optional[str]:
        return self.content.get("_toneId")
