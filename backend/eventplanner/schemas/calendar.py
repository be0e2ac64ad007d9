"""Pydantic schemas for calendar import and export."""
from __future__ import annotations
from typing import Optional

from eventplanner.schemas.base import CamelModel


class SyncResultOut(CamelModel):
    success: bool
    created: int
    updated: int
    total: int
    failed: int = 0
    error: Optional[str] = None


class CalendarLinkOut(CamelModel):
    url: str
