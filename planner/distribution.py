from datetime import date
from typing import Dict, Iterable, List


def distribute(study_days: List[date], quota: int, pinned_days: Iterable[date] = ()) -> Dict[date, int]:
    """
    Spread `quota` sessions over `study_days` (chronological).

    Pinned days get one session first, in the order given, while quota lasts.
    The rest is split evenly; the remainder goes to the LAST days so that
    sessions thicken toward the exam.

    Returns:
        Dict mapping each study day to its session count. Counts are never
        negative and always sum to quota.
    """
    counts = {d: 0 for d in study_days}
    if not study_days:
        return counts

    remaining = max(0, quota)
    for day in pinned_days:
        if remaining == 0:
            break
        if day in counts and counts[day] == 0:
            counts[day] = 1
            remaining -= 1

    n = len(study_days)
    base, extra = divmod(remaining, n)
    for i, day in enumerate(study_days):
        counts[day] += base
        if i >= n - extra:
            counts[day] += 1

    return counts
