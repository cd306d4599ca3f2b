"""Gacha box configuration.

Defines box types, their coin cost and the weighted reward pool of each box.
The catalog is validated and frozen when loaded; nothing mutates it afterwards.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, ValidationError, model_validator

from garage.gacha.errors import ConfigurationError

Rarity = Literal["common", "rare", "epic", "legendary"]


class RewardEntry(BaseModel):
    """One possible outcome of a box. ``probability`` is a relative weight."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    rarity: Rarity
    model_name: str = Field(min_length=1)
    series: str = Field(min_length=1)
    probability: FiniteFloat = Field(gt=0)


class BoxDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    cost_coins: int = Field(ge=0)
    rewards: tuple[RewardEntry, ...] = Field(min_length=1)

    @property
    def total_weight(self) -> float:
        return sum(r.probability for r in self.rewards)

    @model_validator(mode="after")
    def _finite_total(self) -> BoxDefinition:
        if not math.isfinite(self.total_weight):
            msg = f"reward weights of box {self.type!r} overflow to {self.total_weight}"
            raise ValueError(msg)
        return self


class RewardCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    boxes: tuple[BoxDefinition, ...] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_types(self) -> RewardCatalog:
        types = [b.type for b in self.boxes]
        if len(types) != len(set(types)):
            msg = f"duplicate box types in catalog: {types}"
            raise ValueError(msg)
        return self


DEFAULT_CATALOG: dict[str, Any] = {
    "boxes": [
        {
            "type": "standard",
            "cost_coins": 50,
            "rewards": [
                {"rarity": "common", "model_name": "Honda Civic", "series": "Economy", "probability": 50},
                {"rarity": "common", "model_name": "Toyota Corolla", "series": "Economy", "probability": 30},
                {"rarity": "rare", "model_name": "BMW M3", "series": "Sport", "probability": 15},
                {"rarity": "rare", "model_name": "Audi A4", "series": "Luxury", "probability": 5},
            ],
        },
        {
            "type": "premium",
            "cost_coins": 150,
            "rewards": [
                {"rarity": "rare", "model_name": "Porsche 911", "series": "Sport", "probability": 40},
                {"rarity": "rare", "model_name": "Mercedes AMG", "series": "Luxury", "probability": 30},
                {"rarity": "epic", "model_name": "Ferrari F8", "series": "Supercar", "probability": 20},
                {"rarity": "epic", "model_name": "Lamborghini Huracan", "series": "Supercar", "probability": 10},
            ],
        },
        {
            "type": "legendary",
            "cost_coins": 500,
            "rewards": [
                {"rarity": "epic", "model_name": "McLaren 720S", "series": "Hypercar", "probability": 50},
                {"rarity": "legendary", "model_name": "Bugatti Chiron", "series": "Hypercar", "probability": 30},
                {"rarity": "legendary", "model_name": "Koenigsegg Jesko", "series": "Hypercar", "probability": 15},
                {"rarity": "legendary", "model_name": "Pagani Huayra", "series": "Limited Edition", "probability": 5},
            ],
        },
    ],
}


def build_catalog(raw: Mapping[str, Any]) -> Mapping[str, BoxDefinition]:
    """Validate raw catalog data and return a read-only ``box type -> definition`` mapping.

    Raises:
        ConfigurationError: if the data does not describe a usable catalog.
    """
    try:
        catalog = RewardCatalog.model_validate(raw)
    except ValidationError as exc:
        msg = f"invalid reward catalog: {exc}"
        raise ConfigurationError(msg) from exc
    return MappingProxyType({box.type: box for box in catalog.boxes})


def load_catalog(path: str = "") -> Mapping[str, BoxDefinition]:
    """Load the catalog from a JSON file, or the built-in one when ``path`` is empty."""
    if not path:
        return build_catalog(DEFAULT_CATALOG)
    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"cannot read reward catalog from {path}: {exc}"
        raise ConfigurationError(msg) from exc
    return build_catalog(raw)
