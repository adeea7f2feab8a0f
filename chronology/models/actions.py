from __future__ import annotations

from pydantic import BaseModel


class ActionDescriptor(BaseModel):
    slug: str
    label: str
    description: str = ""


__all__ = ["ActionDescriptor"]
