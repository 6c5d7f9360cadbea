"""
Scoring - Multi-Timeframe Alignment
Compares two independent composite results for the same symbol.
"""
from dataclasses import dataclass

from signal_engine.config import AlignmentConfig
from signal_engine.models import CompositeResult, Direction, ScoreScale
from signal_engine.utils.indicators import round_half_up


@dataclass(frozen=True)
class AlignmentResult:
    aligned: bool
    direction: Direction
    alignment_strength: int


NOT_ALIGNED = AlignmentResult(aligned=False, direction=Direction.NEUTRAL, alignment_strength=0)


def check_alignment(first: CompositeResult, second: CompositeResult,
                    config: AlignmentConfig = AlignmentConfig()) -> AlignmentResult:
    """
    Aligned when both directions are equal and non-neutral and both scores
    reach the floor for their scale (min_strength on the weighted scale,
    min_alignment_points on the alignment scale).

    Strength is the mean of the two absolute scores, rounded half up.

    Raises:
    - ValueError when the results use different scales
    """
    if first.scale != second.scale:
        raise ValueError(f"Cannot align a {first.scale.value} result with a {second.scale.value} result")

    if first.direction is Direction.NEUTRAL or second.direction is Direction.NEUTRAL:
        return NOT_ALIGNED
    if first.direction != second.direction:
        return NOT_ALIGNED

    floor = config.min_alignment_points if first.scale is ScoreScale.ALIGNMENT else config.min_strength
    first_strength = abs(first.composite_score)
    second_strength = abs(second.composite_score)
    if first_strength < floor or second_strength < floor:
        return NOT_ALIGNED

    return AlignmentResult(
        aligned=True,
        direction=first.direction,
        alignment_strength=round_half_up((first_strength + second_strength) / 2),
    )
