"""
models/card.py
--------------
Domain models for cards and the links they expose.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Card:
    """
    A titled, tagged unit of content exposing a list of links.

    Attributes:
        id: Database primary key (None for new records).
        title: Display title (required).
        description: Optional free text.
        icon: Optional icon name or emoji.
        color: Optional display color (e.g. '#4ade80').
        thumbnail_url: Optional image URL.
        tag_ids: Identifiers of the tags attached to the card.
        created_at: Creation timestamp.
        updated_at: Bumped on every update.
    """
    title: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tag_ids: list[int] = field(default_factory=list)
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __str__(self) -> str:
        icon = f"{self.icon} " if self.icon else ""
        return f"#{self.id} {icon}{self.title}"


@dataclass
class Link:
    """
    An external link belonging to exactly one card.

    Links are listed by ``order_index`` ascending, ties broken by ``id``.
    """
    card_id: int
    url: str
    title: Optional[str] = None
    order_index: int = 0
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __str__(self) -> str:
        return f"{self.title} - {self.url}" if self.title else self.url
