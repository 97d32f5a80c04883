"""Declarative parameter schema.

An effect's parameter contract is defined as a list of ParamDef objects.
ParamSchema wraps the list and derives defaults, ranges and sections, and
validates raw values against it. Out-of-range values are rejected, never
clamped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from numbers import Integral, Real
from typing import Any

from shared.errors import ParameterOutOfRange


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"
    FLOAT_ARRAY = "float_array"
    INT_ARRAY = "int_array"


@dataclass(frozen=True)
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    range: tuple | None = None  # (min, max), either end may be None
    exclusive_min: bool = False  # min itself is not allowed
    array_size: int = 0         # for ARRAY types
    unit: str = ""


class ParamSchema:
    """Derives defaults and ranges from a declarative param list and validates values."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: _copy(p.default) for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        return {p.key: p.range for p in self._params if p.range is not None}

    def param_sections(self) -> dict[str, list[str]]:
        """Section name -> list of param keys."""
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def validate(self, key: str, value):
        """Type-check and range-check one value. Returns the normalized value.

        Arrays come back as tuples, scalars as float/int.
        """
        p = self._by_key.get(key)
        if p is None:
            raise ParameterOutOfRange(
                f"Unknown parameter '{key}'. Options: {list(self._by_key)}")

        if p.type in (ParamType.FLOAT_ARRAY, ParamType.INT_ARRAY):
            try:
                items = list(value)
            except TypeError:
                raise ParameterOutOfRange(
                    f"'{key}' must be a sequence of {p.array_size} values, got {value!r}."
                ) from None
            if len(items) != p.array_size:
                raise ParameterOutOfRange(
                    f"'{key}' must have exactly {p.array_size} values, got {len(items)}.")
            scalar = ParamType.INT if p.type == ParamType.INT_ARRAY else ParamType.FLOAT
            return tuple(self._check_scalar(p, scalar, v) for v in items)

        return self._check_scalar(p, p.type, value)

    def validate_all(self, raw: dict) -> dict:
        """Validate a full or partial params dict; missing keys take defaults."""
        result = self.default_params()
        for key, value in raw.items():
            result[key] = self.validate(key, value)
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)

    @staticmethod
    def _check_scalar(p: ParamDef, kind: ParamType, v):
        if isinstance(v, bool):
            raise ParameterOutOfRange(f"'{p.key}' must be numeric, got {v!r}.")
        if kind == ParamType.INT:
            if isinstance(v, Integral):
                v = int(v)
            elif isinstance(v, Real) and float(v).is_integer():
                v = int(v)
            else:
                raise ParameterOutOfRange(f"'{p.key}' values must be integers, got {v!r}.")
        else:
            if not isinstance(v, Real):
                raise ParameterOutOfRange(f"'{p.key}' must be a real number, got {v!r}.")
            v = float(v)
            if not math.isfinite(v):
                raise ParameterOutOfRange(f"'{p.key}' must be finite, got {v!r}.")

        if p.range is not None:
            lo, hi = p.range
            if lo is not None and (v <= lo if p.exclusive_min else v < lo):
                bound = ">" if p.exclusive_min else ">="
                raise ParameterOutOfRange(f"'{p.key}' must be {bound} {lo}, got {v}.")
            if hi is not None and v > hi:
                raise ParameterOutOfRange(f"'{p.key}' must be <= {hi}, got {v}.")
        return v


def _copy(val):
    """Shallow copy lists to prevent mutation of defaults."""
    if isinstance(val, list):
        return list(val)
    return val
