"""
Rating normalization: any numeric score becomes an integer from 1 to 5.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from recipe_pipeline.exceptions import ValidationError

MIN_SCORE = 1
MAX_SCORE = 5


def normalize_rating(raw) -> int:
    """
    Round half away from zero, then clamp into [1, 5].

        4.74 -> 5, 0.5 -> 1, 5.5 -> 5, 3.4 -> 3

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(raw, bool):
        raise ValidationError(f"Rating must be numeric, got {raw!r}")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Rating must be numeric, got {raw!r}") from e
    if not value.is_finite():
        raise ValidationError(f"Rating must be numeric, got {raw!r}")

    rounded = int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    return max(MIN_SCORE, min(MAX_SCORE, rounded))
