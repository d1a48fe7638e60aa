import math

from ..errors import ValidationError


def _assert_finite(field: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(field, f"must be finite, got {value!r}")


def _assert_range(field: str, low: float, high: float) -> None:
    _assert_finite(f"{field}.min", low)
    _assert_finite(f"{field}.max", high)
    if low > high:
        raise ValidationError(field, f"min {low} is greater than max {high}")


def _assert_latitude(field: str, value: float) -> None:
    _assert_finite(field, value)
    if not -90 <= value <= 90:
        raise ValidationError(field, f"latitude {value} outside [-90, 90]")


def _assert_longitude(field: str, value: float) -> None:
    _assert_finite(field, value)
    if not -180 <= value <= 180:
        raise ValidationError(field, f"longitude {value} outside [-180, 180]")


def _assert_positive(field: str, value: float) -> None:
    _assert_finite(field, value)
    if value <= 0:
        raise ValidationError(field, f"must be greater than 0, got {value}")


def _parse_float(field: str, raw: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(field, f"not a number: {raw!r}") from None
    if not math.isfinite(value):
        raise ValidationError(field, f"must be finite, got {raw!r}")
    return value


def _parse_int(field: str, raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(field, f"not an integer: {raw!r}") from None


def _cap_limit(limit: int, default: int, maximum: int) -> int:
    """Clamp a requested page size into [1, maximum]; non-positive means default."""
    if limit <= 0:
        return min(default, maximum)
    return min(limit, maximum)
