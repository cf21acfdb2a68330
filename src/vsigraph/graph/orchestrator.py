"""
Live graph recomputation.

Keeps the full VSI inventory and the current name/state filters, and
republishes the synthesized graph whenever any of them changes. The
published GraphSnapshot is immutable and replaced in a single assignment,
so readers always see nodes and edges from the same pass.

Data refreshes follow a last-issued-wins rule: each refresh gets a ticket
from begin_refresh(), and only the most recent ticket may apply its result.
"""

import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ..config import LayoutConfig
from ..exceptions import ContractViolationError, DataSourceError
from ..ingest.vsi_records import VsiRecord
from ..log_config import get_logger
from .filters import filter_records, available_states
from .synthesizer import Diagnostic, GraphEdge, GraphNode, synthesize

logger = get_logger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """One published graph and the inputs that produced it."""
    generation: int = 0
    nodes: tuple[GraphNode, ...] = field(default_factory=tuple)
    edges: tuple[GraphEdge, ...] = field(default_factory=tuple)
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)
    name_filter: str = ""
    state_filter: str = ""
    record_count: int = 0
    matched_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.nodes


Listener = Callable[[GraphSnapshot], None]


class RecomputeOrchestrator:
    """
    Owns the VSI dataset and filters, and publishes graph snapshots.

    All entry points run synchronously. A change requested while a pass is
    running (e.g. from a listener) is queued and handled once the current
    pass has published, so passes never interleave.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or LayoutConfig()
        self._records: tuple[VsiRecord, ...] = ()
        self._name_filter = ""
        self._state_filter = ""
        self._snapshot = GraphSnapshot()
        self._listeners: list[Listener] = []
        self._tickets = itertools.count(1)
        self._current_ticket = 0
        self._running = False
        self._pending = False
        self.loading = False
        self.error: Optional[str] = None

    # -- read side --------------------------------------------------------

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def records(self) -> tuple[VsiRecord, ...]:
        return self._records

    @property
    def name_filter(self) -> str:
        return self._name_filter

    @property
    def state_filter(self) -> str:
        return self._state_filter

    def state_options(self) -> list[str]:
        """States a state selector should offer for the current dataset."""
        return available_states(self._records)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every newly published snapshot.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- inputs -----------------------------------------------------------

    def set_records(self, records: Sequence[VsiRecord]):
        """Replace the whole dataset and republish.

        Every record must have an id, whether or not the current filters
        match it. On a contract violation the previous dataset is kept.
        """
        records = tuple(records)
        for record in records:
            if record.id is None:
                raise ContractViolationError(f"VSI record without id: {record.name!r}")

        previous = self._records
        self._records = records
        try:
            self._recompute(reason="dataset replaced")
        except ContractViolationError:
            self._records = previous
            raise

    def set_name_filter(self, value: str):
        value = value or ""
        if value == self._name_filter:
            return
        previous, self._name_filter = self._name_filter, value
        try:
            self._recompute(reason="name filter changed")
        except ContractViolationError:
            self._name_filter = previous
            raise

    def set_state_filter(self, value: str):
        value = value or ""
        if value == self._state_filter:
            return
        previous, self._state_filter = self._state_filter, value
        try:
            self._recompute(reason="state filter changed")
        except ContractViolationError:
            self._state_filter = previous
            raise

    # -- refresh protocol -------------------------------------------------

    def begin_refresh(self) -> int:
        """Start a data refresh and return its ticket.

        Issuing a new ticket supersedes every earlier one.
        """
        self._current_ticket = next(self._tickets)
        self.loading = True
        logger.debug(f"Refresh {self._current_ticket} issued")
        return self._current_ticket

    def is_current(self, ticket: int) -> bool:
        return ticket == self._current_ticket

    def complete_refresh(self, ticket: int, records: Sequence[VsiRecord]) -> bool:
        """Apply a refresh result if ``ticket`` is still the latest one.

        Returns False (and changes nothing) for a superseded ticket.
        """
        if not self.is_current(ticket):
            logger.info(
                f"Dropping result of refresh {ticket}; "
                f"refresh {self._current_ticket} superseded it"
            )
            return False
        self.loading = False
        self.error = None
        logger.info(f"Refresh {ticket} delivered {len(records)} VSIs")
        try:
            self.set_records(records)
        except ContractViolationError as e:
            self.error = str(e)
            raise
        return True

    def fail_refresh(self, ticket: int, message: str) -> bool:
        """Record an upstream failure for the latest refresh.

        The current dataset and snapshot are kept.
        """
        if not self.is_current(ticket):
            logger.info(f"Ignoring failure of superseded refresh {ticket}: {message}")
            return False
        self.loading = False
        self.error = message
        logger.error(f"Refresh {ticket} failed: {message}")
        return True

    def refresh(self, fetch: Callable[[], Sequence[VsiRecord]]) -> bool:
        """Run ``fetch`` through the refresh protocol.

        A DataSourceError from ``fetch`` becomes the error state. Any other
        error also ends the refresh (``loading`` is cleared and ``error`` set)
        and then propagates.
        """
        ticket = self.begin_refresh()
        try:
            records = fetch()
        except DataSourceError as e:
            self.fail_refresh(ticket, str(e))
            return False
        except Exception as e:
            self.fail_refresh(ticket, str(e))
            raise
        return self.complete_refresh(ticket, records)

    # -- internals --------------------------------------------------------

    def _recompute(self, reason: str):
        if self._running:
            self._pending = True
            logger.debug(f"Queued recompute ({reason}) behind the running pass")
            return

        self._running = True
        try:
            self._run_pass(reason)
            while self._pending:
                self._pending = False
                self._run_pass("queued change")
        finally:
            self._running = False
            self._pending = False

    def _run_pass(self, reason: str):
        name_filter, state_filter = self._name_filter, self._state_filter
        matched = filter_records(self._records, name_filter, state_filter)
        result = synthesize(matched, self.layout)

        snapshot = GraphSnapshot(
            generation=self._snapshot.generation + 1,
            nodes=result.nodes,
            edges=result.edges,
            diagnostics=result.diagnostics,
            name_filter=name_filter,
            state_filter=state_filter,
            record_count=len(self._records),
            matched_count=len(matched),
        )
        self._snapshot = snapshot
        logger.info(
            f"Published graph {snapshot.generation} ({reason}): "
            f"{len(matched)}/{len(self._records)} VSIs, "
            f"{len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges"
        )

        for listener in list(self._listeners):
            listener(snapshot)
