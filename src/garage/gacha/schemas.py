"""Pydantic schemas for the gacha API. JSON keys are camelCase."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


# --- Open box ---


class OpenBoxRequest(_CamelModel):
    box_type: str


class RewardResponse(_CamelModel):
    token_id: int
    model_name: str
    series: str
    rarity: str
    tx_hash: str


class CoinsResponse(_CamelModel):
    spent: int
    remaining: int


class OpenBoxResponse(_CamelModel):
    success: bool = True
    box_type: str
    reward: RewardResponse
    coins: CoinsResponse
    message: str


# --- Box listing ---


class BoxRewardResponse(_CamelModel):
    rarity: str
    model_name: str
    series: str
    probability: float


class BoxResponse(_CamelModel):
    type: str
    cost_coins: int
    can_afford: bool
    rewards: list[BoxRewardResponse]


class BoxListResponse(_CamelModel):
    user_coins: int
    boxes: list[BoxResponse]
