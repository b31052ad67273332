"""Bounded history of scanned static payloads."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models import SavedQR
from .errors import err_not_found

logger = logging.getLogger("qrisdinamis.history")


class HistoryService:
    """Most-recent-first store, deduplicated on payload."""

    def __init__(self, session: AsyncSession, limit: int | None = None):
        self.session = session
        self.limit = limit or settings.history_limit

    async def save(self, *, payload: str, merchant_name: str) -> SavedQR:
        await self.session.execute(delete(SavedQR).where(SavedQR.payload == payload))
        entry = SavedQR(payload=payload, merchant_name=merchant_name)
        self.session.add(entry)
        await self.session.flush()

        stale_ids = (
            await self.session.execute(select(SavedQR.id).order_by(SavedQR.id.desc()).offset(self.limit))
        ).scalars().all()
        if stale_ids:
            await self.session.execute(delete(SavedQR).where(SavedQR.id.in_(stale_ids)))

        await self.session.commit()
        await self.session.refresh(entry)
        logger.info(
            "history entry saved",
            extra={"entry_id": entry.id, "merchant_name": merchant_name, "pruned": len(stale_ids)},
        )
        return entry

    async def list_entries(self) -> list[SavedQR]:
        result = await self.session.execute(select(SavedQR).order_by(SavedQR.id.desc()).limit(self.limit))
        return list(result.scalars().all())

    async def delete(self, entry_id: int) -> None:
        result = await self.session.execute(delete(SavedQR).where(SavedQR.id == entry_id))
        if result.rowcount == 0:
            raise err_not_found(f"History entry {entry_id} not found")
        await self.session.commit()
        logger.info("history entry deleted", extra={"entry_id": entry_id})
