"""Wheel table and animation target mapping.

The wheel has six equal segments. Segment 0 sits at the top and segments
advance clockwise in 60 degree steps. The display surface rotates the wheel
clockwise by the returned target, so ``target % 360`` must bring the resolved
segment under the fixed pointer.
"""

from __future__ import annotations

from decimal import Decimal

SEGMENT_COUNT = 6
SEGMENT_ANGLE = 360 // SEGMENT_COUNT
FULL_ROTATIONS = 3

# Payout multiplier per segment, same table as the contract display layer
MULTIPLIERS: tuple[Decimal, ...] = (
    Decimal("0"),
    Decimal("0"),
    Decimal("1.0"),
    Decimal("1.2"),
    Decimal("1.5"),
    Decimal("2.0"),
)


def _check_segment(segment_index: int) -> int:
    if not 0 <= segment_index < SEGMENT_COUNT:
        raise ValueError(f"segment index out of range: {segment_index}")
    return segment_index


def multiplier(segment_index: int) -> Decimal:
    return MULTIPLIERS[_check_segment(segment_index)]


def multiplier_label(segment_index: int) -> str:
    """Human label for a segment, e.g. ``"1.2×"``."""
    m = multiplier(segment_index)
    return "0×" if m == 0 else f"{m}×"


def expected_payout(stake: Decimal, segment_index: int) -> Decimal:
    return stake * multiplier(segment_index)


def rotation_target(segment_index: int) -> int:
    """Rotation in degrees that lands the pointer on ``segment_index``.

    Always at least three full turns. Callers reset their accumulated
    rotation to 0 before applying it.
    """
    _check_segment(segment_index)
    return FULL_ROTATIONS * 360 + (360 - segment_index * SEGMENT_ANGLE)


def segment_at_pointer(rotation: int) -> int:
    """Segment under the pointer after rotating the wheel by ``rotation``."""
    return ((-rotation) % 360) // SEGMENT_ANGLE
