"""
models/tag.py
-------------
Domain model for card tags.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# Reserved tag attached to every card created from a user request.
REQUEST_TAG_NAME = "request"
REQUEST_TAG_COLOR = "#4ade80"


@dataclass
class Tag:
    """A unique, optionally colored label attached to cards."""
    name: str
    color: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_reserved(self) -> bool:
        return self.name == REQUEST_TAG_NAME

    def __str__(self) -> str:
        return f"#{self.id} {self.name}"
