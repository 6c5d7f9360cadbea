# Scoring - composite score, action bands and timeframe alignment
from .composite import (ComponentReadings, build_composite, classify_action, weighted_score, alignment_points,
                        alignment_direction)
from .alignment import AlignmentResult, check_alignment
