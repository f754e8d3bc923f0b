"""Farmer registration and profile endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farmledger.api.auth import require_farmer
from farmledger.errors import ConflictError, PersistenceError
from farmledger.models.database import Farmer, FarmingScore, get_db
from farmledger.schemas.schemas import (
    ERROR_RESPONSES,
    ErrorResponse,
    FarmerCreate,
    FarmerResponse,
    FarmerUpdate,
)

logger = logging.getLogger(__name__)

farmers_router = APIRouter(
    prefix="/api/v1/farmers",
    tags=["farmers"],
    responses=ERROR_RESPONSES,
)


async def _persist(db: AsyncSession, farmer: Farmer, *, new: bool = False) -> None:
    """Commit *farmer*; a new farmer also gets the zero score row."""
    try:
        if new:
            db.add(farmer)
            await db.flush()
            db.add(FarmingScore(farmer_id=farmer.id, current_score=0, lifetime_points=0))
        await db.commit()
        await db.refresh(farmer)
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            f"duplicate farmer data: {exc.orig}",
            public_message="Farmer data conflicts with an existing record",
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Farmer write failed")
        raise PersistenceError("farmer write failed") from exc


@farmers_router.post(
    "",
    response_model=FarmerResponse,
    status_code=201,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register_farmer(
    body: FarmerCreate,
    db: AsyncSession = Depends(get_db),
) -> FarmerResponse:
    """Register a farmer together with their zero score row.

    Args:
        body: Profile fields.
        db: Async database session dependency.

    Returns:
        The stored profile, including the id the auth gateway should issue.

    Raises:
        ConflictError: 409 if the email is already registered.
    """
    farmer = Farmer(**body.model_dump())
    await _persist(db, farmer, new=True)

    logger.info("Registered farmer %s (%s)", farmer.id, farmer.name)
    return FarmerResponse.model_validate(farmer)


@farmers_router.get("/me", response_model=FarmerResponse)
async def get_profile(farmer: Farmer = Depends(require_farmer)) -> FarmerResponse:
    """Return the authenticated farmer's profile."""
    return FarmerResponse.model_validate(farmer)


@farmers_router.patch("/me", response_model=FarmerResponse)
async def update_profile(
    body: FarmerUpdate,
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> FarmerResponse:
    """Update the fields present in the request body.

    Args:
        body: Fields to change; omitted fields stay as they are.
        farmer: Authenticated farmer.
        db: Async database session dependency.

    Returns:
        The updated profile.
    """
    for name, value in body.model_dump(exclude_unset=True).items():
        setattr(farmer, name, value)
    await _persist(db, farmer)
    return FarmerResponse.model_validate(farmer)
