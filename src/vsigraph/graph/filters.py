"""
Record filters.

Narrows the VSI inventory by name and operational state before it is
turned into a graph. Both filters are optional; an empty filter value
matches every record.
"""

from typing import Iterable, Sequence

from ..ingest.vsi_records import VsiRecord

# Some devices flag the state column with a trailing asterisk ("up*").
STATE_MARKER = "*"


def normalize_state(state: str) -> str:
    """Lower-case a state and drop one trailing marker character."""
    if not state:
        return ""
    state = state.lower()
    if state.endswith(STATE_MARKER):
        state = state[:-1]
    return state


def matches_name(record: VsiRecord, name_filter: str) -> bool:
    """Case-insensitive substring match on the record name."""
    if not name_filter:
        return True
    if not record.name:
        return False
    return name_filter.lower() in record.name.lower()


def matches_state(record: VsiRecord, state_filter: str) -> bool:
    """Exact match of the normalized record state against the filter."""
    if not state_filter:
        return True
    if not record.state:
        return False
    return normalize_state(record.state) == state_filter.lower()


def filter_records(
    records: Sequence[VsiRecord],
    name_filter: str = "",
    state_filter: str = "",
) -> list[VsiRecord]:
    """Return the records matching both filters, in input order."""
    return [
        r for r in records
        if matches_name(r, name_filter) and matches_state(r, state_filter)
    ]


def available_states(records: Iterable[VsiRecord]) -> list[str]:
    """Sorted distinct normalized states, for populating a state selector."""
    return sorted({normalize_state(r.state) for r in records if r.state})
