"""Recurring series helpers shared by lessons and purchases."""

from .expander import expand_occurrences, new_group_id
from .scope import Occurrence, remaining_end_date, resolve_scope

__all__ = ["expand_occurrences", "new_group_id", "Occurrence", "remaining_end_date", "resolve_scope"]
