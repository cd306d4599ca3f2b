"""Weighted random reward selection."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol

from garage.gacha.catalog import RewardEntry
from garage.gacha.errors import ConfigurationError


class RandomSource(Protocol):
    def random(self) -> float: ...


def select_random_reward(rewards: Sequence[RewardEntry], rng: RandomSource) -> RewardEntry:
    """Draw one reward, each with chance ``probability / total``.

    Walks the rewards in order and returns the first one whose cumulative
    weight exceeds a uniform draw in ``[0, total)``.
    """
    if not rewards:
        msg = "cannot draw from an empty reward list"
        raise ConfigurationError(msg)

    total = sum(r.probability for r in rewards)
    if not math.isfinite(total) or total <= 0:
        msg = f"reward weights must sum to a positive finite number, got {total}"
        raise ConfigurationError(msg)

    point = rng.random() * total
    cumulative = 0.0
    for reward in rewards:
        cumulative += reward.probability
        if point < cumulative:
            return reward

    # Float accumulation can leave cumulative a hair below total
    return next(r for r in reversed(rewards) if r.probability > 0)
