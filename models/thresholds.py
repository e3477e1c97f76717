"""Threshold configuration and the merge of per-device overrides."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class PHThresholds:
    critical_low: float = 6.0
    warning_low: float = 6.4
    normal_min: float = 6.5
    normal_max: float = 8.5
    warning_high: float = 8.6
    critical_high: float = 9.0


@dataclass(frozen=True)
class TurbidityThresholds:
    """Limits in NTU."""

    normal_max: float = 5.0
    warning_max: float = 10.0
    critical_min: float = 10.01


@dataclass(frozen=True)
class TemperatureThresholds:
    """Limits in degrees Celsius. There is no critical tier."""

    normal_max: float = 35.0
    warning_min: float = 35.01


@dataclass(frozen=True)
class TDSThresholds:
    """Limits in ppm."""

    normal_max: float = 999.0
    warning_max: float = 1200.0
    critical_min: float = 1200.01


@dataclass(frozen=True)
class ThresholdConfiguration:
    ph: PHThresholds = PHThresholds()
    turbidity: TurbidityThresholds = TurbidityThresholds()
    temp: TemperatureThresholds = TemperatureThresholds()
    tds: TDSThresholds = TDSThresholds()

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)


DEFAULT_THRESHOLDS = ThresholdConfiguration()

SECTIONS = tuple(item.name for item in fields(ThresholdConfiguration))


def merge_thresholds(
    defaults: ThresholdConfiguration,
    overrides: Mapping[str, Mapping[str, Any]] | None,
) -> ThresholdConfiguration:
    """Overlay a sparse ``{section: {field: value}}`` mapping on ``defaults``.

    Raises ``ValueError`` for unknown sections or fields and for values that
    are not numeric. ``None`` values leave the default in place.
    """

    if not overrides:
        return defaults

    updates: Dict[str, Any] = {}
    for section_name, section_overrides in overrides.items():
        if section_name not in SECTIONS:
            raise ValueError(f"Unknown threshold section {section_name!r}.")
        if not section_overrides:
            continue

        section = getattr(defaults, section_name)
        known = {item.name for item in fields(section)}
        changes: Dict[str, float] = {}
        for field_name, raw in section_overrides.items():
            if field_name not in known:
                raise ValueError(
                    f"Unknown threshold field {section_name}.{field_name!r}."
                )
            if raw is None:
                continue
            if isinstance(raw, bool):
                raise ValueError(f"Threshold {section_name}.{field_name} must be numeric.")
            try:
                changes[field_name] = float(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"Threshold {section_name}.{field_name} must be numeric."
                ) from exc

        if changes:
            updates[section_name] = replace(section, **changes)

    return replace(defaults, **updates)


def describe_changes(
    old: ThresholdConfiguration, new: ThresholdConfiguration
) -> List[str]:
    """List changed limits as ``section.field: old -> new`` strings."""

    changes: List[str] = []
    old_values = old.to_dict()
    for section_name, section in new.to_dict().items():
        for field_name, value in section.items():
            previous = old_values[section_name][field_name]
            if previous != value:
                changes.append(f"{section_name}.{field_name}: {previous} -> {value}")
    return changes
