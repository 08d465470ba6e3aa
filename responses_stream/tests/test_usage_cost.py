"""Tests for usage normalization and cost computation."""
from __future__ import annotations

import pytest

from responses_stream.base.models import ModelInfo, PriceTier
from responses_stream.usage import (
    calculate_cost,
    extract_counts,
    includes_cache_in_input,
    normalize_usage,
    resolve_prices,
    select_context_tier,
)
from responses_stream.usage.cost import Prices

EPS = 1e-10


def _model(**kwargs) -> ModelInfo:
    base = dict(id="m", input_price=1.25, output_price=10.0, cache_read_price=0.125, cache_write_price=1.5)
    base.update(kwargs)
    return ModelInfo(**base)


def test_plain_usage_cost():
    chunk = normalize_usage({"input_tokens": 100, "output_tokens": 20}, _model())
    assert chunk.input_tokens == 100 and chunk.output_tokens == 20  # nosec B101
    assert chunk.total_cost == pytest.approx(0.000325, abs=EPS)  # nosec B101
    assert chunk.cache_read_tokens is None and chunk.cache_write_tokens is None  # nosec B101


def test_inclusive_usage_subtracts_cached_tokens_before_billing():
    raw = {
        "input_tokens": 1000,
        "output_tokens": 100,
        "input_tokens_details": {"cached_tokens": 400},
        "output_tokens_details": {"reasoning_tokens": 30},
    }
    chunk = normalize_usage(raw, _model())
    expected = 600 / 1e6 * 1.25 + 100 / 1e6 * 10.0 + 400 / 1e6 * 0.125
    assert chunk.total_cost == pytest.approx(expected, abs=EPS)  # nosec B101
    assert chunk.cache_read_tokens == 400  # nosec B101
    assert chunk.reasoning_tokens == 30  # nosec B101
    assert chunk.input_tokens == 1000  # nosec B101


def test_exclusive_usage_adds_cache_counters():
    raw = {
        "input_tokens": 200,
        "output_tokens": 50,
        "cache_creation_input_tokens": 300,
        "cache_read_input_tokens": 500,
    }
    counts = extract_counts(raw)
    assert counts.input_includes_cache is False  # nosec B101
    assert counts.total_input_tokens == 1000 and counts.billable_input_tokens == 200  # nosec B101
    chunk = normalize_usage(raw, _model())
    expected = 200 / 1e6 * 1.25 + 50 / 1e6 * 10.0 + 300 / 1e6 * 1.5 + 500 / 1e6 * 0.125
    assert chunk.total_cost == pytest.approx(expected, abs=EPS)  # nosec B101


def test_convention_detection():
    assert includes_cache_in_input({"input_tokens": 1, "input_tokens_details": {}}) is True  # nosec B101
    assert includes_cache_in_input({"prompt_tokens": 1}) is True  # nosec B101
    assert includes_cache_in_input({"input_tokens": 1, "cache_read_input_tokens": 2}) is False  # nosec B101
    assert includes_cache_in_input({"input_tokens": 1}) is True  # nosec B101


def test_cache_hit_and_miss_counts_rebuild_missing_input_total():
    counts = extract_counts({"prompt_tokens_details": {"cached_tokens": 30, "cache_miss_tokens": 70}})
    assert counts.input_tokens == 100 and counts.cache_read_tokens == 30  # nosec B101
    assert counts.billable_input_tokens == 70  # nosec B101


def test_smallest_context_tier_at_or_above_input_is_selected():
    tiers = (
        PriceTier(context_window=400_000, input_price=2.5, output_price=15.0),
        PriceTier(context_window=1_000_000, input_price=5.0, output_price=20.0),
    )
    model = _model(context_window=200_000, tiers=tiers)
    assert select_context_tier(model, 150_000) is tiers[0]  # nosec B101
    assert select_context_tier(model, 400_000) is tiers[0]  # nosec B101
    assert select_context_tier(model, 300_000) is tiers[0]  # nosec B101
    assert select_context_tier(model, 900_000) is tiers[1]  # nosec B101
    assert select_context_tier(model, 2_000_000) is tiers[1]  # nosec B101

    prices = resolve_prices(model, 300_000)
    assert prices.input == 2.5 and prices.output == 15.0  # nosec B101
    assert prices.cache_read == 0.125  # nosec B101


def test_cheaper_low_context_tier_applies_inside_model_window():
    tiers = (
        PriceTier(context_window=200_000, input_price=1.25, output_price=10.0),
        PriceTier(context_window=10**12, input_price=2.5, output_price=15.0),
    )
    model = _model(context_window=1_048_576, input_price=2.5, output_price=15.0, tiers=tiers)
    assert select_context_tier(model, 100_000) is tiers[0]  # nosec B101
    assert select_context_tier(model, 250_000) is tiers[1]  # nosec B101

    chunk = normalize_usage({"input_tokens": 100_000, "output_tokens": 1_000}, model)
    expected = 100_000 / 1e6 * 1.25 + 1_000 / 1e6 * 10.0
    assert chunk.total_cost == pytest.approx(expected, abs=EPS)  # nosec B101


def test_no_context_tier_without_tier_table():
    assert select_context_tier(_model(context_window=200_000), 5_000_000) is None  # nosec B101


def test_named_service_tier_overrides_base_prices():
    model = _model(service_tiers=(PriceTier(name="flex", input_price=0.625, output_price=5.0),))
    chunk = normalize_usage({"input_tokens": 100, "output_tokens": 20}, model, "flex")
    assert chunk.total_cost == pytest.approx(100 / 1e6 * 0.625 + 20 / 1e6 * 5.0, abs=EPS)  # nosec B101
    unknown = normalize_usage({"input_tokens": 100, "output_tokens": 20}, model, "priority")
    assert unknown.total_cost == pytest.approx(0.000325, abs=EPS)  # nosec B101


def test_missing_prices_contribute_nothing():
    cost = calculate_cost(Prices(input=2.0), input_tokens=1_000_000, output_tokens=5_000, cache_read_tokens=10)
    assert cost == pytest.approx(2.0, abs=EPS)  # nosec B101


def test_cost_is_none_without_model_metadata():
    chunk = normalize_usage({"input_tokens": 5, "output_tokens": 1})
    assert chunk.total_cost is None  # nosec B101


def test_sdk_usage_objects_and_chat_style_keys():
    class _Usage:
        def model_dump(self):
            return {"prompt_tokens": 10, "completion_tokens": 4, "prompt_tokens_details": {"cached_tokens": 2}}

    chunk = normalize_usage(_Usage(), _model())
    assert (chunk.input_tokens, chunk.output_tokens, chunk.cache_read_tokens) == (10, 4, 2)  # nosec B101


def test_model_info_from_config_dict_sorts_tiers_and_names_service_tiers():
    model = ModelInfo.from_dict(
        "gpt-x",
        {
            "input_price": 1,
            "context_window": 100,
            "tiers": [{"context_window": 500, "input_price": 3}, {"context_window": 200, "input_price": 2}],
            "service_tiers": {"flex": {"input_price": 0.5}},
        },
    )
    assert [t.context_window for t in model.tiers] == [200, 500]  # nosec B101
    assert model.service_tier("flex").input_price == 0.5  # nosec B101
    assert model.service_tier(None) is None  # nosec B101
