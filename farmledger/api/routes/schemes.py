"""Government scheme matching and application endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select, union
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farmledger.api.auth import require_farmer
from farmledger.engine.scheme_matcher import match_schemes
from farmledger.errors import (
    ConflictError,
    ConsentRequiredError,
    NotFoundError,
    PersistenceError,
)
from farmledger.models.database import (
    Farmer,
    FarmExpense,
    FarmIncome,
    FarmingScore,
    Scheme,
    SchemeApplication,
    get_db,
)
from farmledger.schemas.schemas import (
    ERROR_RESPONSES,
    ErrorResponse,
    SchemeApplyRequest,
    SchemeApplyResponse,
    SchemeMatchResponse,
)

logger = logging.getLogger(__name__)

schemes_router = APIRouter(
    prefix="/api/v1/match",
    tags=["schemes"],
    responses=ERROR_RESPONSES,
)


@schemes_router.get("/schemes", response_model=list[SchemeMatchResponse])
async def get_matched_schemes(
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> list[SchemeMatchResponse]:
    """Evaluate every catalogue scheme against the farmer's profile.

    The farmer's current score, place and ledger crops feed the matcher.
    A farmer without a score row is treated as score 0.

    Args:
        farmer: Authenticated farmer.
        db: Async database session dependency.

    Returns:
        One entry per scheme with eligibility, reasons and application state.
    """
    try:
        score = await db.scalar(
            select(FarmingScore.current_score).where(FarmingScore.farmer_id == farmer.id)
        ) or 0
        crop_stmt = union(
            select(FarmExpense.crop).where(FarmExpense.farmer_id == farmer.id),
            select(FarmIncome.crop).where(FarmIncome.farmer_id == farmer.id),
        )
        crops = set((await db.scalars(crop_stmt)).all())
        applied_ids = set(
            (
                await db.scalars(
                    select(SchemeApplication.scheme_id).where(
                        SchemeApplication.farmer_id == farmer.id,
                    )
                )
            ).all()
        )
        schemes = list((await db.scalars(select(Scheme).order_by(Scheme.id))).all())
    except SQLAlchemyError as exc:
        logger.exception("Scheme matching query failed for farmer %s", farmer.id)
        raise PersistenceError("scheme matching query failed") from exc

    matches = match_schemes(
        schemes,
        score=score,
        place=farmer.place,
        crops=crops,
        applied_ids=applied_ids,
    )
    return [
        SchemeMatchResponse(
            id=m.scheme.id,
            name=m.scheme.name,
            type=m.scheme.type,
            provider=m.scheme.provider,
            description=m.scheme.description,
            benefits=m.scheme.benefits,
            criteria=m.scheme.criteria or {},
            link=m.scheme.link,
            deadline=m.scheme.deadline,
            is_eligible=m.is_eligible,
            match_reason=m.match_reason,
            missing_criteria=m.missing_criteria,
            has_applied=m.has_applied,
        )
        for m in matches
    ]


@schemes_router.post(
    "/apply",
    response_model=SchemeApplyResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Data sharing consent required"},
        409: {"model": ErrorResponse, "description": "Already applied"},
    },
)
async def apply_to_scheme(
    body: SchemeApplyRequest,
    farmer: Farmer = Depends(require_farmer),
    db: AsyncSession = Depends(get_db),
) -> SchemeApplyResponse:
    """Submit the farmer's application to a partner scheme.

    Raises:
        ConsentRequiredError: 403 without data-sharing consent.
        NotFoundError: 404 for an unknown scheme.
        ConflictError: 409 if the farmer already applied.
    """
    farmer_id = farmer.id
    if not farmer.data_sharing_consent:
        raise ConsentRequiredError(
            f"farmer {farmer_id} has not granted data sharing consent",
            public_message="Data sharing consent required to apply.",
        )

    try:
        scheme = await db.get(Scheme, body.scheme_id)
        if scheme is None:
            raise NotFoundError(
                f"scheme {body.scheme_id} not found", public_message="Scheme not found",
            )
        application = SchemeApplication(farmer_id=farmer_id, scheme_id=body.scheme_id)
        db.add(application)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            f"farmer {farmer_id} already applied to scheme {body.scheme_id}",
            public_message="Already applied.",
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Scheme application failed for farmer %s", farmer_id)
        raise PersistenceError("scheme application failed") from exc

    logger.info("Farmer %s applied to scheme %s", farmer_id, body.scheme_id)
    return SchemeApplyResponse(
        application_id=application.id,
        message="Application submitted successfully to partner.",
    )
