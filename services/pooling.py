"""Combine per-participant slot sets under a scheduling policy."""

from datetime import datetime
from typing import Mapping, Sequence

from models.entities import SchedulingPolicy, TimeSlot
from models.exceptions import InvalidConfiguration, UnsupportedPolicy


def _pool_single(per_participant: Mapping[str, Sequence[datetime]]) -> list[TimeSlot]:
    if len(per_participant) != 1:
        raise InvalidConfiguration(
            f"Single policy needs exactly one participant, got {len(per_participant)}"
        )
    [(participant_id, times)] = per_participant.items()
    return [TimeSlot(time=t, contributors=[participant_id]) for t in times]


def _pool_collective(per_participant: Mapping[str, Sequence[datetime]]) -> list[TimeSlot]:
    """Keep an instant only if every participant offers it."""
    participant_ids = list(per_participant)
    if not participant_ids:
        return []

    first, *rest = participant_ids
    others = [set(per_participant[p]) for p in rest]

    slots = []
    emitted = set()
    for t in per_participant[first]:
        if t in emitted:
            continue
        if all(t in times for times in others):
            slots.append(TimeSlot(time=t, contributors=list(participant_ids)))
            emitted.add(t)
    return slots


def _pool_round_robin(per_participant: Mapping[str, Sequence[datetime]]) -> list[TimeSlot]:
    """Keep every offered instant, accumulating who offers it."""
    by_time: dict[datetime, TimeSlot] = {}
    for participant_id, times in per_participant.items():
        for t in times:
            slot = by_time.get(t)
            if slot is None:
                slot = by_time[t] = TimeSlot(time=t)
            slot.add_contributor(participant_id)
    return list(by_time.values())


_POOLERS = {
    SchedulingPolicy.SINGLE: _pool_single,
    SchedulingPolicy.COLLECTIVE: _pool_collective,
    SchedulingPolicy.ROUND_ROBIN: _pool_round_robin,
}


def pool_slots(
    per_participant: Mapping[str, Sequence[datetime]],
    policy: SchedulingPolicy
) -> list[TimeSlot]:
    """
    Merge filtered slot instants into one list of TimeSlots (unsorted).

    Participants are processed in mapping order, which fixes the order of
    contributors on each slot. A failed participant is passed in with an
    empty sequence.
    """
    pooler = _POOLERS.get(policy)
    if pooler is None:
        raise UnsupportedPolicy(f"Unsupported scheduling policy: {policy!r}")
    return pooler(per_participant)


def sort_slots(slots: Sequence[TimeSlot]) -> list[TimeSlot]:
    """Order slots by instant, ascending. Duplicates are left in place."""
    return sorted(slots, key=lambda s: s.time)
