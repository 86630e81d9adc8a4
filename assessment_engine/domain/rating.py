from __future__ import annotations

from collections.abc import Sequence

from assessment_engine.domain.models import LevelCheckGroup

MIN_RATING = 1
MAX_RATING = 5


def level_passed(group: LevelCheckGroup) -> bool:
    if not group.checks:
        return False
    return all(check.met is True for check in group.checks)


def compute_highest_demonstrated(levels: Sequence[LevelCheckGroup]) -> int:
    """Highest level whose checks all passed; 1 when none did.

    Levels are not assumed to pass cumulatively: a passed level 3 with a failed
    level 2 still rates 3.
    """
    if not levels:
        return MIN_RATING

    highest = 0
    for group in sorted(levels, key=lambda item: item.level):
        if level_passed(group):
            highest = max(highest, group.level)

    if highest <= 0:
        return MIN_RATING
    return min(highest, MAX_RATING)
