"""
Shared row access for soft-deletable entities.

Reads filter is_active = true unless the caller is looking for a reactivation candidate.
Nothing is hard-deleted: deactivate() flips the flag and leaves dependent rows alone.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateKey, NotFound, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def _describe_key(key: Dict[str, Any]) -> str:
    return ", ".join(f"{k}='{v}'" for k, v in key.items())


async def get_visible(db: AsyncSession, model: Type[ModelT], obj_id: UUID) -> Optional[ModelT]:
    result = await db.execute(
        select(model).where(model.id == obj_id, model.is_active.is_(True))
    )
    return result.scalar_one_or_none()


async def get_or_404(
    db: AsyncSession,
    model: Type[ModelT],
    obj_id: UUID,
    label: Optional[str] = None,
    active_only: bool = True,
) -> ModelT:
    if active_only:
        obj = await get_visible(db, model, obj_id)
    else:
        obj = await db.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    return obj


async def find_by_key(
    db: AsyncSession,
    model: Type[ModelT],
    key: Dict[str, Any],
    active: Optional[bool] = None,
) -> Optional[ModelT]:
    """Row matching a unique key. active=None ignores the flag (reactivation lookup)."""
    stmt = select(model)
    for column, value in key.items():
        stmt = stmt.where(getattr(model, column) == value)
    if active is not None:
        stmt = stmt.where(model.is_active.is_(active))
    result = await db.execute(stmt)
    return result.scalars().first()


async def ensure_key_free(
    db: AsyncSession,
    model: Type[ModelT],
    key: Dict[str, Any],
    exclude_id: Optional[UUID] = None,
) -> None:
    """Raise DuplicateKey if another row (active or not) already holds this unique key."""
    existing = await find_by_key(db, model, key)
    if existing is not None and existing.id != exclude_id:
        raise DuplicateKey(f"{model.__name__} with {_describe_key(key)} already exists")


async def create_or_reactivate(
    db: AsyncSession,
    model: Type[ModelT],
    key: Dict[str, Any],
    fields: Dict[str, Any],
) -> Tuple[ModelT, bool]:
    """
    Upsert by unique key. Active match: DuplicateKey. Inactive match: reactivate the same row
    and apply fields. No match: insert. Returns (row, reactivated). Flushes; caller commits.
    """
    existing = await find_by_key(db, model, key)
    if existing is not None:
        if existing.is_active:
            raise DuplicateKey(f"{model.__name__} with {_describe_key(key)} already exists")
        existing.is_active = True
        apply_updates(existing, fields)
        await db.flush()
        logger.info("Reactivated %s %s (%s)", model.__name__, existing.id, _describe_key(key))
        return existing, True
    obj = model(**key, **fields, is_active=True)
    db.add(obj)
    await db.flush()
    return obj, False


def apply_updates(obj: Any, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        setattr(obj, name, value)


def form_updates(
    fields: Dict[str, Any], clear: Optional[List[str]], nullable: Sequence[str]
) -> Dict[str, Any]:
    """
    Partial update from multipart form fields.

    Omitted form fields arrive as None, so only supplied values are kept. Fields named in
    `clear` are set to None and must be listed in `nullable`.
    """
    data = {name: value for name, value in fields.items() if value is not None}
    for name in clear or []:
        if name not in nullable:
            raise ValidationError(f"{name} cannot be cleared")
        data[name] = None
    return data


async def deactivate(db: AsyncSession, model: Type[ModelT], obj_id: UUID, label: Optional[str] = None) -> ModelT:
    """Soft delete. Deactivating an inactive row is a no-op success."""
    obj = await db.get(model, obj_id)
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    if obj.is_active:
        obj.is_active = False
        await db.commit()
        await db.refresh(obj)
        logger.info("Deactivated %s %s", model.__name__, obj_id)
    return obj


async def commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateKey(message) from e
