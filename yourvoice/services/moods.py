# yourvoice/services/moods.py
from __future__ import annotations

from typing import Dict, Iterable, List

from yourvoice.schemas.mood import DepartmentMood, MoodAggregate, MoodCounts, MoodEntry, MoodLevel

MOOD_WEIGHTS: Dict[MoodLevel, float] = {
    MoodLevel.GOOD: 1.0,
    MoodLevel.FAIR: 0.5,
    MoodLevel.BAD: 0.0,
}


def mood_score(good: int, fair: int, bad: int) -> float:
    total = good + fair + bad
    if total == 0:
        return 0.0
    weighted = (
        good * MOOD_WEIGHTS[MoodLevel.GOOD]
        + fair * MOOD_WEIGHTS[MoodLevel.FAIR]
        + bad * MOOD_WEIGHTS[MoodLevel.BAD]
    )
    return weighted / total * 100


def _tally(counts: Dict[str, int], mood: MoodLevel) -> None:
    counts[mood.value] += 1


def aggregate_moods(entries: Iterable[MoodEntry]) -> MoodAggregate:
    """
    Per-department and overall good/fair/bad counts with a 0-100 score.
    Departments appear in the order they are first seen.
    """
    overall = {"good": 0, "fair": 0, "bad": 0}
    by_dept: Dict[str, Dict[str, int]] = {}

    for e in entries:
        _tally(overall, e.mood)
        dept = by_dept.setdefault(e.department, {"good": 0, "fair": 0, "bad": 0})
        _tally(dept, e.mood)

    rows = [
        DepartmentMood(
            department=name,
            total=sum(c.values()),
            score=mood_score(c["good"], c["fair"], c["bad"]),
            **c,
        )
        for name, c in by_dept.items()
    ]
    return MoodAggregate(
        per_department=rows,
        overall=MoodCounts(
            total=sum(overall.values()),
            score=mood_score(overall["good"], overall["fair"], overall["bad"]),
            **overall,
        ),
    )


def rank_departments(rows: List[DepartmentMood]) -> List[DepartmentMood]:
    # sorted() is stable: equal scores keep first-seen order
    return sorted(rows, key=lambda r: r.score, reverse=True)
