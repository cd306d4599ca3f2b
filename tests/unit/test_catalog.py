"""Reward catalog loading and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from garage.gacha.catalog import DEFAULT_CATALOG, build_catalog, load_catalog
from garage.gacha.errors import ConfigurationError


def _box(**overrides):
    box = {
        "type": "mini",
        "cost_coins": 10,
        "rewards": [{"rarity": "common", "model_name": "Kei", "series": "City", "probability": 1}],
    }
    box.update(overrides)
    return box


class TestDefaultCatalog:

    def test_boxes_and_costs(self):
        catalog = load_catalog()
        assert list(catalog) == ["standard", "premium", "legendary"]
        assert {k: b.cost_coins for k, b in catalog.items()} == {
            "standard": 50,
            "premium": 150,
            "legendary": 500,
        }

    def test_every_box_has_positive_weights(self):
        for box in load_catalog().values():
            assert box.rewards
            assert all(r.probability > 0 for r in box.rewards)
            assert box.total_weight == pytest.approx(100)

    def test_catalog_is_read_only(self):
        catalog = load_catalog()
        with pytest.raises(TypeError):
            catalog["free"] = catalog["standard"]  # type: ignore[index]
        with pytest.raises(ValidationError):
            catalog["standard"].cost_coins = 0  # type: ignore[misc]


class TestBuildCatalog:

    def test_valid_custom_catalog(self):
        catalog = build_catalog({"boxes": [_box()]})
        assert catalog["mini"].rewards[0].model_name == "Kei"

    @pytest.mark.parametrize(
        "box",
        [
            _box(rewards=[]),
            _box(cost_coins=-1),
            _box(rewards=[{"rarity": "common", "model_name": "Kei", "series": "City", "probability": 0}]),
            _box(rewards=[{"rarity": "mythic", "model_name": "Kei", "series": "City", "probability": 1}]),
            _box(rewards=[{"rarity": "common", "model_name": "Kei", "series": "City", "probability": float("inf")}]),
            _box(rewards=[{"rarity": "common", "model_name": "Kei", "series": "City", "probability": float("nan")}]),
        ],
    )
    def test_rejects_malformed_box(self, box):
        with pytest.raises(ConfigurationError):
            build_catalog({"boxes": [box]})

    def test_rejects_weights_that_overflow_total(self):
        huge = {"rarity": "common", "model_name": "Kei", "series": "City", "probability": 1e308}
        with pytest.raises(ConfigurationError):
            build_catalog({"boxes": [_box(rewards=[huge, huge])]})

    def test_rejects_duplicate_box_types(self):
        with pytest.raises(ConfigurationError):
            build_catalog({"boxes": [_box(), _box()]})

    def test_rejects_empty_catalog(self):
        with pytest.raises(ConfigurationError):
            build_catalog({"boxes": []})


class TestLoadCatalogFromFile:

    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"boxes": [_box(type="gold", cost_coins=999)]}))
        catalog = load_catalog(str(path))
        assert list(catalog) == ["gold"]
        assert catalog["gold"].cost_coins == 999

    def test_default_catalog_roundtrips_through_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(DEFAULT_CATALOG))
        assert list(load_catalog(str(path))) == list(load_catalog())

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_catalog(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_catalog(str(path))

    def test_infinite_weight_in_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(
            '{"boxes": [{"type": "mini", "cost_coins": 1, "rewards": '
            '[{"rarity": "rare", "model_name": "Kei", "series": "City", "probability": Infinity}]}]}'
        )
        with pytest.raises(ConfigurationError):
            load_catalog(str(path))
