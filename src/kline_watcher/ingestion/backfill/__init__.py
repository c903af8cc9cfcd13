"""Backfill package: gap detection and repair over stored history."""

from .gap_detector import find_gaps, is_contiguous_full_page
from .gap_fixer import EngineState, GapFixer, GapFixReport, fix_gaps

__all__ = [
    "EngineState",
    "GapFixer",
    "GapFixReport",
    "find_gaps",
    "fix_gaps",
    "is_contiguous_full_page",
]
