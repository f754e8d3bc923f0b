"""Farmer identity dependencies.

Token issuance and verification happen in an upstream gateway; by the time a
request reaches this service the authenticated farmer id travels in the
``X-Farmer-Id`` header.
"""
from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farmledger.errors import NotFoundError, PersistenceError
from farmledger.models.database import Farmer, get_db

logger = logging.getLogger(__name__)


async def get_current_farmer_id(
    x_farmer_id: str | None = Header(default=None, alias="X-Farmer-Id"),
) -> int:
    """Resolve the authenticated farmer id.

    Raises:
        HTTPException: 401 if the header is missing or not a positive integer.
    """
    try:
        farmer_id = int(x_farmer_id) if x_farmer_id is not None else 0
    except ValueError:
        farmer_id = 0
    if farmer_id < 1:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return farmer_id


async def require_farmer(
    farmer_id: int = Depends(get_current_farmer_id),
    db: AsyncSession = Depends(get_db),
) -> Farmer:
    """Load the authenticated farmer.

    Raises:
        NotFoundError: If the id does not match a registered farmer.
        PersistenceError: If the lookup failed.
    """
    try:
        farmer = await db.get(Farmer, farmer_id)
    except SQLAlchemyError as exc:
        logger.exception("Farmer lookup failed for %s", farmer_id)
        raise PersistenceError(f"farmer lookup failed for {farmer_id}") from exc
    if farmer is None:
        raise NotFoundError(f"farmer {farmer_id} not found", public_message="Farmer not found")
    return farmer
