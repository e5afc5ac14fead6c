"""Append-only audit ledger. Stores a hash of each input, never the input itself."""

import hashlib
import json
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ada.storage.models import LedgerEntry

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


def hash_input(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def preview_input(text: str) -> str:
    return text[:PREVIEW_LENGTH]


async def record(
    session: AsyncSession,
    input_text: str,
    actions: list[str],
    results: list[str],
    plan_id: Optional[UUID] = None,
    flush: bool = True,
) -> LedgerEntry:
    """Append a ledger entry for one processed input.

    Pass ``flush=False`` to leave the write to the caller's commit.
    """
    entry = LedgerEntry(
        input_hash=hash_input(input_text),
        input_preview=preview_input(input_text),
        actions=list(actions),
        results=list(results),
        plan_id=plan_id,
    )
    session.add(entry)
    if flush:
        await session.flush()
    logger.info(
        "Ledger entry %s recorded: %d actions (input %s)",
        str(entry.id)[:8],
        len(entry.actions),
        entry.input_hash[:12],
    )
    return entry


async def list_entries(session: AsyncSession, limit: Optional[int] = None) -> list[LedgerEntry]:
    """Fetch ledger entries, newest first."""
    query = select(LedgerEntry).order_by(LedgerEntry.timestamp.desc())
    if limit:
        query = query.limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


def entry_to_export(entry: LedgerEntry) -> dict:
    """Exportable view of an entry. The raw input is never part of it."""
    return {
        "timestamp": entry.timestamp.isoformat(),
        "inputHash": entry.input_hash,
        "inputPreview": entry.input_preview,
        "actions": list(entry.actions),
        "results": list(entry.results),
    }


def render_export(entries: list[LedgerEntry]) -> str:
    ordered = sorted(entries, key=lambda e: e.timestamp, reverse=True)
    return json.dumps([entry_to_export(e) for e in ordered], indent=2, sort_keys=True, ensure_ascii=False)


async def export_json(session: AsyncSession) -> str:
    """Export the whole ledger as a JSON array, newest first."""
    return render_export(await list_entries(session))


def verify(entry: LedgerEntry, candidate_input: str) -> bool:
    """Check whether ``candidate_input`` is the text this entry was recorded for."""
    return entry.input_hash == hash_input(candidate_input)
