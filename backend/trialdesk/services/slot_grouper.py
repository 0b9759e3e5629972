# backend/trialdesk/services/slot_grouper.py
"""
Groups slot candidates that share an identical interval.

Pure functions: no database, no clock. A group never lists the same teacher
twice, members are ordered by teacher id, and groups are ordered by start.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from ..core.constants import REFERENCE_TIMEZONE_LABEL
from ..schemas.availability import SlotCandidate, SlotGroup

GroupKey = Tuple[datetime, datetime]


def _display_label(first: SlotCandidate, teacher_count: int) -> str:
    label = first.client_zone_label or ""
    noun = "teacher" if teacher_count == 1 else "teachers"
    client_clock = first.client_time_display.split("-")[0]
    reference_clock = first.reference_time_display.split("-")[0]
    prefix = f"{label} {client_clock} time" if label else f"{client_clock}"
    return (
        f"{prefix} ({reference_clock} {REFERENCE_TIMEZONE_LABEL}) - "
        f"{teacher_count} {noun} available"
    )


def build_group(start_utc: datetime, end_utc: datetime, members: Iterable[SlotCandidate]) -> SlotGroup:
    unique: Dict[str, SlotCandidate] = {}
    for member in members:
        unique.setdefault(member.teacher_id, member)
    ordered = [unique[teacher_id] for teacher_id in sorted(unique)]
    if not ordered:
        raise ValueError("A slot group needs at least one member")
    first = ordered[0]
    return SlotGroup(
        start_utc=start_utc,
        end_utc=end_utc,
        members=ordered,
        client_time_display=first.client_time_display,
        reference_time_display=first.reference_time_display,
        teacher_count=len(ordered),
        display_label=_display_label(first, len(ordered)),
    )


def group(candidates: Iterable[SlotCandidate]) -> "OrderedDict[GroupKey, SlotGroup]":
    """Bucket candidates by (start_utc, end_utc), ascending by start then end."""
    buckets: Dict[GroupKey, List[SlotCandidate]] = {}
    for candidate in candidates:
        buckets.setdefault((candidate.start_utc, candidate.end_utc), []).append(candidate)

    grouped: "OrderedDict[GroupKey, SlotGroup]" = OrderedDict()
    for key in sorted(buckets):
        grouped[key] = build_group(key[0], key[1], buckets[key])
    return grouped


def group_list(candidates: Iterable[SlotCandidate]) -> List[SlotGroup]:
    return list(group(candidates).values())
