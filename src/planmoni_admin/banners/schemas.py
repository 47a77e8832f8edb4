"""Banner form and status schemas."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass
class BannerFields:
    """Editable banner columns. Empty optional strings are stored as null."""

    title: str
    description: str | None = None
    cta_text: str | None = None
    link_url: str | None = None
    order_index: int = 0
    is_active: bool = True

    def to_row(self) -> dict:
        return {
            "title": self.title,
            "description": self.description or None,
            "cta_text": self.cta_text or None,
            "link_url": self.link_url or None,
            "order_index": self.order_index,
            "is_active": self.is_active,
        }


@dataclass
class BannerImage:
    filename: str
    content: bytes
    content_type: str | None = None


class BannerStatusRequest(BaseModel):
    is_active: bool
