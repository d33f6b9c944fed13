"""
The closed set of categorical dimensions the risk engine understands.

Each dimension knows its display label and how to pull a cleaned value out
of a record. Anything that takes a dimension accepts either the enum member
or its string key; unknown keys fail fast with UnknownDimensionError.
"""
from enum import Enum

from collision_risk.features.normalize import (
    normalize,
    normalize_driver_sex,
    normalize_vehicle_type,
)


class UnknownDimensionError(ValueError):
    """Raised when a caller names a dimension outside the recognised set."""


def _hour_label(hour):
    if hour is None:
        return None
    try:
        hour = int(hour)
    except (TypeError, ValueError):
        return None
    if 0 <= hour <= 23:
        return f"{hour:02d}:00"
    return None


class Dimension(Enum):
    BOROUGH = "borough"
    FACTOR1 = "factor1"
    FACTOR2 = "factor2"
    VEHICLE_TYPE = "vehicle_type"
    PRE_CRASH = "pre_crash"
    DRIVER_SEX = "driver_sex"
    HOUR = "hour"

    @property
    def label(self) -> str:
        return _LABELS[self]

    def clean(self, raw):
        """Apply this dimension's normaliser to a raw (or already clean) value."""
        if self is Dimension.HOUR:
            if isinstance(raw, str) and raw.endswith(":00"):
                raw = raw[:-3]
            return _hour_label(raw)
        return _NORMALIZERS[self](raw)

    def value_of(self, record):
        """Cleaned value of this dimension for one record (None when absent)."""
        if self is Dimension.HOUR:
            return _hour_label(record.hour)
        return self.clean(record.categories.get(self.value))

    @classmethod
    def resolve(cls, key) -> "Dimension":
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            pass
        if isinstance(key, str) and key.upper() in cls.__members__:
            return cls[key.upper()]
        raise UnknownDimensionError(f"Unknown dimension: {key!r}")


_LABELS = {
    Dimension.BOROUGH: "Borough",
    Dimension.FACTOR1: "Contributing factor",
    Dimension.FACTOR2: "Contributing factor (2)",
    Dimension.VEHICLE_TYPE: "Vehicle type",
    Dimension.PRE_CRASH: "Pre-crash action",
    Dimension.DRIVER_SEX: "Driver sex",
    Dimension.HOUR: "Hour of day",
}

_NORMALIZERS = {
    Dimension.BOROUGH: normalize,
    Dimension.FACTOR1: normalize,
    Dimension.FACTOR2: normalize,
    Dimension.VEHICLE_TYPE: normalize_vehicle_type,
    Dimension.PRE_CRASH: normalize,
    Dimension.DRIVER_SEX: normalize_driver_sex,
}

# Categorical attributes stored on a record (hour lives on its own field)
CATEGORY_DIMENSIONS = tuple(d for d in Dimension if d is not Dimension.HOUR)

ALL_DIMENSIONS = tuple(Dimension)


def resolve_dimensions(dimensions=None):
    """Normalise an iterable of dimension keys; None means every dimension."""
    if dimensions is None:
        return ALL_DIMENSIONS
    resolved = []
    for key in dimensions:
        dim = Dimension.resolve(key)
        if dim not in resolved:
            resolved.append(dim)
    return tuple(resolved)
