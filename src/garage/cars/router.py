"""Garage API: the caller's minted cars."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from garage.auth.dependencies import get_current_identity
from garage.auth.identity import VerifiedIdentity
from garage.cars.schemas import CarResponse, GarageResponse
from garage.cars.service import list_cars
from garage.database import get_session

router = APIRouter(prefix="/garage", tags=["Garage"])


@router.get("/cars", response_model=GarageResponse)
async def get_my_cars(
    identity: VerifiedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> GarageResponse:
    cars = await list_cars(db, identity.user_id)
    return GarageResponse(
        cars=[CarResponse.model_validate(car) for car in cars],
        total=len(cars),
    )
