"""Set-diversifying card selection."""

from __future__ import annotations

from collections.abc import Sequence

from utils.card_models import CardCandidate


def select_diverse(candidates: Sequence[CardCandidate], limit: int) -> list[CardCandidate]:
    """
    Pick at most ``limit`` candidates, one per source set before any duplicates.

    The first pass takes the first candidate of every unseen set in input order.
    If that leaves room, a second pass fills up with the remaining candidates in
    their original order. Identical input always yields identical output.
    """
    if limit <= 0:
        return []

    chosen: list[CardCandidate] = []
    chosen_ids: set[str] = set()
    seen_sets: set[str] = set()
    for candidate in candidates:
        if candidate.source_set_id in seen_sets:
            continue
        seen_sets.add(candidate.source_set_id)
        chosen.append(candidate)
        chosen_ids.add(candidate.card_id)
        if len(chosen) >= limit:
            return chosen

    for candidate in candidates:
        if len(chosen) >= limit:
            break
        if candidate.card_id in chosen_ids:
            continue
        chosen.append(candidate)
        chosen_ids.add(candidate.card_id)

    return chosen


__all__ = ["select_diverse"]
