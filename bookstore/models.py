"""Data models for books."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any


@dataclass
class Book:
    """Book record as stored."""
    id: int
    title: str
    author: str
    isbn: str
    price: Decimal
    stock: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation, also used as the cached snapshot."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "price": float(self.price),
            "stock": self.stock,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        """Rebuild a book from its cached snapshot."""
        if not isinstance(data, dict):
            raise TypeError(f"Expected a book object, got {type(data).__name__}")
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=int(data["id"]),
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            price=Decimal(str(data["price"])),
            stock=int(data["stock"]),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None
        )


@dataclass
class BookInput:
    """Validated write payload; every field is overwritten on update."""
    title: str
    author: str
    isbn: str
    price: Decimal = Decimal("0")
    stock: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "price": float(self.price),
            "stock": self.stock
        }


class Outcome(Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass
class WriteResult:
    """Result of a create, update or delete."""
    outcome: Outcome
    data: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK
