"""Gacha API: open a box, list boxes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from garage.auth.dependencies import get_current_identity
from garage.auth.identity import VerifiedIdentity
from garage.gacha.schemas import (
    BoxListResponse,
    BoxResponse,
    BoxRewardResponse,
    CoinsResponse,
    OpenBoxRequest,
    OpenBoxResponse,
    RewardResponse,
)
from garage.gacha.service import GachaService

router = APIRouter(prefix="/gacha", tags=["Gacha"])


def get_gacha_service(request: Request) -> GachaService:
    """The gacha service attached to the application at startup."""
    return request.app.state.gacha_service


@router.post("/open", response_model=OpenBoxResponse)
async def open_box(
    body: OpenBoxRequest,
    identity: VerifiedIdentity = Depends(get_current_identity),
    service: GachaService = Depends(get_gacha_service),
) -> OpenBoxResponse:
    """Spend coins on a box and mint the car it yields."""
    result = await service.open_box(identity.user_id, body.box_type)
    reward = result.reward
    return OpenBoxResponse(
        box_type=result.box_type,
        reward=RewardResponse(
            token_id=result.token_id,
            model_name=reward.model_name,
            series=reward.series,
            rarity=reward.rarity,
            tx_hash=result.tx_hash,
        ),
        coins=CoinsResponse(spent=result.spent, remaining=result.remaining_coins),
        message=f"Congratulations! You got a {reward.rarity} {reward.model_name}!",
    )


@router.get("/boxes", response_model=BoxListResponse)
async def list_boxes(
    identity: VerifiedIdentity = Depends(get_current_identity),
    service: GachaService = Depends(get_gacha_service),
) -> BoxListResponse:
    """Available boxes, their reward odds, and whether the caller can afford each."""
    listing = await service.list_boxes(identity.user_id)
    return BoxListResponse(
        user_coins=listing.user_coins,
        boxes=[
            BoxResponse(
                type=box.type,
                cost_coins=box.cost_coins,
                can_afford=box.can_afford,
                rewards=[
                    BoxRewardResponse(
                        rarity=r.rarity,
                        model_name=r.model_name,
                        series=r.series,
                        probability=r.probability,
                    )
                    for r in box.rewards
                ],
            )
            for box in listing.boxes
        ],
    )
