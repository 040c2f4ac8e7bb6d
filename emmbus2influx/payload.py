"""Values read from a meter, rendered as MQTT JSON payloads and Influx/Grafana fields."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

CHANNEL_MAX_LEN = 140

# A field for the line protocol: (name, value, decimals); decimals is None for integers.
FieldT = tuple[str, "int | float", "int | None"]


class ForceType(enum.Enum):
    """Type a value is forced to when it is written out."""

    NONE = "none"
    INT = "int"
    FLOAT = "float"


@dataclass
class RegisterReading:
    """One register value read from a meter."""

    name: str
    value: float = 0.0
    influx_value: float | None = None
    is_int: bool = False
    decimals: int = 2
    force_type: ForceType = ForceType.NONE
    array_name: str | None = None
    enable_mqtt: bool = True
    enable_influx: bool = True
    enable_grafana: bool = True

    @property
    def influx(self) -> float:
        return self.value if self.influx_value is None else self.influx_value


@dataclass
class Formula:
    """A value computed from a meter's registers."""

    name: str
    value: float = 0.0
    influx_value: float | None = None
    decimals: int = 2
    force_type: ForceType = ForceType.NONE
    array_name: str | None = None
    enable_mqtt: bool = True
    enable_influx: bool = True
    enable_grafana: bool = True

    @property
    def influx(self) -> float:
        return self.value if self.influx_value is None else self.influx_value


@dataclass
class Meter:
    """A meter with its latest readings and formula results."""

    name: str
    registers: list[RegisterReading] = field(default_factory=list)
    formulas: list[Formula] = field(default_factory=list)
    disabled: bool = False
    influx_measurement: str | None = None
    influx_tag_name: str | None = None
    iname: str | None = None
    gname: str | None = None


def format_value(value: float, decimals: int, is_int: bool) -> str:
    """Render a value: truncated to an integer, or fixed-point with ``decimals`` places."""
    if is_int:
        return str(int(value))
    return f"{value:{10 + decimals}.{decimals}f}".lstrip()


def _mqtt_items(meter: Meter) -> Iterator[tuple[str, str | None, str]]:
    for reg in meter.registers:
        if reg.enable_mqtt:
            yield reg.name, reg.array_name, format_value(reg.value, reg.decimals, reg.is_int)
    for formula in meter.formulas:
        if formula.enable_mqtt:
            yield (
                formula.name,
                formula.array_name,
                format_value(formula.value, formula.decimals, formula.force_type is ForceType.INT),
            )


def _enabled_count(meter: Meter, flag: str) -> int:
    items: Iterable[RegisterReading | Formula] = [*meter.registers, *meter.formulas]
    return sum(1 for item in items if getattr(item, flag))


def mqtt_payload(meter: Meter) -> str | None:
    """The JSON object published for a meter, or None if there is nothing to publish.

    Consecutive values sharing an array name are collected in one JSON array.
    """
    if meter.disabled or not _enabled_count(meter, "enable_mqtt"):
        return None
    parts = ["{"]
    current_array = ""
    first = True
    for name, array_name, text in _mqtt_items(meter):
        if array_name:
            if array_name != current_array:
                if current_array:
                    parts.append("]")
                current_array = array_name
                if not first:
                    parts.append(", ")
                first = False
                parts.append(f'"{array_name}":[{text}')
            else:
                parts.append(f", {text}")
        else:
            if current_array:
                parts.append("]")
                current_array = ""
            if not first:
                parts.append(", ")
            first = False
            parts.append(f'"{name}":{text}')
    if current_array:
        parts.append("]")
    parts.append("}")
    return "".join(parts)


def _register_field(reg: RegisterReading) -> FieldT:
    if reg.is_int or reg.force_type is ForceType.INT:
        return reg.name, int(reg.influx), None
    return reg.name, float(reg.influx), reg.decimals


def _formula_field(formula: Formula) -> FieldT:
    if formula.force_type is ForceType.INT:
        return formula.name, int(formula.influx), None
    return formula.name, float(formula.influx), formula.decimals


def influx_fields(meter: Meter) -> list[FieldT]:
    """Fields written to Influx for a meter as (name, value, decimals) triples.

    Every formula is written; registers only where Influx writing is enabled.
    """
    if meter.disabled or not _enabled_count(meter, "enable_influx"):
        return []
    fields = [_register_field(reg) for reg in meter.registers if reg.enable_influx]
    fields.extend(_formula_field(formula) for formula in meter.formulas)
    return fields


def grafana_fields(meter: Meter) -> list[FieldT]:
    """Fields pushed to Grafana for a meter as (name, value, decimals) triples."""
    if meter.disabled or not _enabled_count(meter, "enable_grafana"):
        return []
    fields = [_register_field(reg) for reg in meter.registers if reg.enable_grafana]
    fields.extend(_formula_field(f) for f in meter.formulas if f.enable_grafana)
    return fields


def grafana_channel(meter: Meter, default_measurement: str, use_influx_measurement: bool) -> str:
    """Grafana Live channel name: optionally ``measurement/`` followed by the meter name."""
    channel = ""
    if use_influx_measurement:
        channel = (meter.influx_measurement or default_measurement)[:CHANNEL_MAX_LEN]
        if channel:
            channel += "/"
    return channel + (meter.gname or meter.name)[:CHANNEL_MAX_LEN]