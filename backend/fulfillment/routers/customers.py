"""
Customer loyalty endpoints: points balance, history, redemption.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fulfillment.models import CustomerProfile
from fulfillment.services.domain import InsufficientPointsError, LoyaltyService, NotFoundError
from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.utils import exceptions as http
from shared.utils.schemas import RedeemRequest, RewardEntryOutput, RewardsOutput


router = APIRouter(prefix="/api/customers", tags=["customers"])


def _rewards_output(profile: CustomerProfile, history: list) -> RewardsOutput:
    return RewardsOutput(
        customer_id=profile.id,
        current_points=profile.current_points,
        lifetime_points=profile.lifetime_points,
        total_orders=profile.total_orders,
        total_spent_cents=profile.total_spent_cents,
        tier=profile.tier,
        history=[RewardEntryOutput.model_validate(entry) for entry in history],
    )


@router.get("/{customer_id}/rewards", response_model=RewardsOutput)
def get_rewards(
    customer_id: str,
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> RewardsOutput:
    """Points balance and most recent history entries."""
    service = LoyaltyService(db)
    try:
        profile = service.get_profile(customer_id)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    return _rewards_output(profile, service.list_history(customer_id, limit=limit))


@router.post("/{customer_id}/redeem", response_model=RewardsOutput)
def redeem_points(
    customer_id: str,
    body: RedeemRequest,
    db: Session = Depends(get_db),
) -> RewardsOutput:
    service = LoyaltyService(db)
    try:
        profile = service.redeem(customer_id, body.points_cost, body.reward_name)
    except NotFoundError as e:
        raise http.NotFoundError(e.entity, e.entity_id)
    except InsufficientPointsError as e:
        raise http.ConflictError(
            f"Not enough points: {e.required} needed, {e.available} available",
            customer_id=customer_id,
        )
    return _rewards_output(profile, service.list_history(customer_id))
