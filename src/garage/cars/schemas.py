"""Pydantic schemas for the garage API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CarResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )

    token_id: int
    model_name: str
    series: str
    rarity: str
    box_type: str
    mint_tx_hash: str
    created_at: datetime


class GarageResponse(BaseModel):
    cars: list[CarResponse]
    total: int
