from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from ..common.datetime_utils import as_date
from ..core.enums import EditScope
from ..core.exceptions import ValidationError


class Occurrence(Protocol):
    @property
    def occurrence_id(self) -> int: ...

    @property
    def occurs_at(self) -> date | datetime: ...

    @property
    def recurring_group_id(self) -> Optional[str]: ...


T = TypeVar("T", bound=Occurrence)


def resolve_scope(record: T, group_members: Iterable[T], scope: EditScope) -> list[T]:
    """Records an edit/delete of ``record`` applies to, ordered by date.

    ``single`` -> only the record; ``future`` -> the record plus every member of
    its series at or after its date. ``future`` needs a recurring record.
    """
    if scope == EditScope.SINGLE:
        return [record]

    group_id = record.recurring_group_id
    if not group_id:
        raise ValidationError("Only recurring entries can be changed together with future occurrences")

    targets = {record.occurrence_id: record}
    for member in group_members:
        if member.recurring_group_id != group_id:
            continue
        if member.occurs_at >= record.occurs_at:
            targets.setdefault(member.occurrence_id, member)

    return sorted(targets.values(), key=lambda m: (m.occurs_at, m.occurrence_id))


def remaining_end_date(group_members: Sequence[T], removed: Sequence[T]) -> Optional[date]:
    """Date of the last series member left after ``removed`` are deleted."""
    removed_ids = {m.occurrence_id for m in removed}
    left = [m for m in group_members if m.occurrence_id not in removed_ids]
    if not left:
        return None
    return as_date(max(m.occurs_at for m in left))
