from __future__ import annotations


class Book:
    """Represents a single row of the books table."""

    def __init__(self, title: str, author: str, id: int | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (id: {self.id})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return (self.id, self.title, self.author) == (other.id, other.title, other.author)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "author": self.author}

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(title=data["title"], author=data["author"], id=data.get("id"))
