"""Item and holder lookups."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from custody_gate.models.holder import Holder
from custody_gate.models.item import HolderItem, Item


async def get_item(session: AsyncSession, item_id: int) -> Item | None:
    """Return an item by id."""
    return await session.get(Item, item_id)


async def get_item_for_update(session: AsyncSession, item_id: int) -> Item | None:
    """Return an item by id, locking its row where the backend supports it.

    The lock serializes concurrent checkpoint decisions for one item. SQLite
    ignores ``FOR UPDATE`` and relies on its database-level write lock.
    """
    result = await session.execute(
        select(Item).where(Item.id == item_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def find_item_by_serial(session: AsyncSession, serial_number: str) -> Item | None:
    """Return the item with a serial number, if registered."""
    result = await session.execute(
        select(Item).where(Item.serial_number == serial_number)
    )
    return result.scalar_one_or_none()


async def get_holder(session: AsyncSession, holder_id: int) -> Holder | None:
    """Return a holder by id."""
    return await session.get(Holder, holder_id)


async def list_items_for_holder(session: AsyncSession, holder_id: int) -> list[Item]:
    """List the items actively linked to a holder, oldest assignment first.

    Parameters
    ----------
    session : AsyncSession
        Active database session.
    holder_id : int
        Holder identifier.

    Returns
    -------
    list[Item]
        Items with an active custody link to the holder.
    """
    result = await session.execute(
        select(Item)
        .join(HolderItem, HolderItem.item_id == Item.id)
        .where(HolderItem.holder_id == holder_id, HolderItem.status == "active")
        .order_by(HolderItem.assigned_at, HolderItem.id)
    )
    return list(result.scalars().all())
