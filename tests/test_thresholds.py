from __future__ import annotations

import pytest

from models.thresholds import (
    DEFAULT_THRESHOLDS,
    ThresholdConfiguration,
    describe_changes,
    merge_thresholds,
)


def test_defaults_match_published_limits() -> None:
    config = ThresholdConfiguration()

    assert config.ph.critical_low == 6.0
    assert config.ph.critical_high == 9.0
    assert config.turbidity.critical_min == 10.01
    assert config.temp.warning_min == 35.01
    assert config.tds.critical_min == 1200.01


def test_merge_without_overrides_returns_defaults() -> None:
    assert merge_thresholds(DEFAULT_THRESHOLDS, None) is DEFAULT_THRESHOLDS
    assert merge_thresholds(DEFAULT_THRESHOLDS, {}) is DEFAULT_THRESHOLDS


def test_merge_overlays_only_named_fields() -> None:
    merged = merge_thresholds(
        DEFAULT_THRESHOLDS,
        {"ph": {"critical_low": 5.8, "warning_low": None}, "tds": {"warning_max": "1300"}},
    )

    assert merged.ph.critical_low == 5.8
    assert merged.ph.warning_low == DEFAULT_THRESHOLDS.ph.warning_low
    assert merged.tds.warning_max == 1300.0
    assert merged.turbidity == DEFAULT_THRESHOLDS.turbidity
    assert DEFAULT_THRESHOLDS.ph.critical_low == 6.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"chlorine": {"normal_max": 1}},
        {"temp": {"critical_high": 40}},
        {"ph": {"critical_low": "low"}},
        {"ph": {"critical_low": True}},
    ],
)
def test_merge_rejects_invalid_overrides(overrides) -> None:
    with pytest.raises(ValueError):
        merge_thresholds(DEFAULT_THRESHOLDS, overrides)


def test_describe_changes_lists_dotted_paths() -> None:
    merged = merge_thresholds(DEFAULT_THRESHOLDS, {"ph": {"critical_low": 5.8}})

    assert describe_changes(DEFAULT_THRESHOLDS, merged) == ["ph.critical_low: 6.0 -> 5.8"]
    assert describe_changes(merged, merged) == []
