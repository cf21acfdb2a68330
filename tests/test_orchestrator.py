"""Tests for the recompute orchestrator."""

import pytest
from vsigraph.exceptions import ContractViolationError, DataSourceError
from vsigraph.ingest.vsi_records import VsiRecord, PeerLink
from vsigraph.graph.orchestrator import RecomputeOrchestrator, GraphSnapshot


def _sample_records():
    return [
        VsiRecord(id=1, name="VSI-A", state="up*", peers=(
            PeerLink(id=10, peer_address="10.0.0.1", pw_state="up"),
        )),
        VsiRecord(id=2, name="VSI-B", state="down", peers=(
            PeerLink(id=11, peer_address="10.0.0.1", pw_state="down"),
        )),
    ]


def _other_records():
    return [VsiRecord(id=9, name="OTHER", state="up", peers=(
        PeerLink(id=1, peer_address="10.9.9.9", pw_state="up"),
    ))]


def _node_ids(snapshot):
    return sorted(n.id for n in snapshot.nodes)


class TestRecompute:
    def test_initial_snapshot_empty(self):
        orch = RecomputeOrchestrator()
        assert orch.snapshot.is_empty
        assert orch.snapshot.generation == 0

    def test_set_records_publishes(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        snap = orch.snapshot
        assert _node_ids(snap) == ["peer-10.0.0.1", "vsi-1", "vsi-2"]
        assert len(snap.edges) == 2
        assert snap.generation == 1
        assert snap.record_count == 2
        assert snap.matched_count == 2

    def test_name_filter_recomputes(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_name_filter("vsi-b")
        assert _node_ids(orch.snapshot) == ["peer-10.0.0.1", "vsi-2"]
        assert orch.snapshot.name_filter == "vsi-b"

    def test_state_filter_recomputes(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_state_filter("up")
        assert _node_ids(orch.snapshot) == ["peer-10.0.0.1", "vsi-1"]
        assert [e.payload.is_up for e in orch.snapshot.edges] == [True]

    def test_empty_result_is_not_error(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_name_filter("no-such-vsi")
        assert orch.snapshot.nodes == ()
        assert orch.snapshot.edges == ()
        assert orch.error is None

    def test_dataset_replaced_wholesale(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_records(_other_records())
        assert _node_ids(orch.snapshot) == ["peer-10.9.9.9", "vsi-9"]

    def test_unchanged_filter_does_not_republish(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_name_filter("")
        assert orch.snapshot.generation == 1

    def test_snapshot_is_immutable(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        with pytest.raises(AttributeError):
            orch.snapshot.nodes = ()

    def test_old_snapshot_untouched_by_new_pass(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        first = orch.snapshot
        orch.set_state_filter("down")
        assert len(first.nodes) == 3
        assert len(orch.snapshot.nodes) == 2

    def test_contract_violation_keeps_previous_dataset(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        with pytest.raises(ContractViolationError):
            orch.set_records([VsiRecord(id=None, name="bad")])
        assert len(orch.records) == 2
        assert orch.snapshot.generation == 1

    def test_hidden_record_without_id_rejected(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_name_filter("vsi-a")
        with pytest.raises(ContractViolationError):
            orch.set_records(_sample_records() + [VsiRecord(id=None, name="hidden")])
        assert len(orch.records) == 2
        orch.set_name_filter("")
        assert orch.snapshot.name_filter == ""
        assert len(orch.snapshot.nodes) == 3

    def test_failed_filter_pass_restores_filter(self, monkeypatch):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        orch.set_name_filter("vsi-a")

        def broken(records, layout=None):
            raise ContractViolationError("bad record")

        monkeypatch.setattr("vsigraph.graph.orchestrator.synthesize", broken)
        with pytest.raises(ContractViolationError):
            orch.set_name_filter("")
        with pytest.raises(ContractViolationError):
            orch.set_state_filter("up")
        assert orch.name_filter == orch.snapshot.name_filter == "vsi-a"
        assert orch.state_filter == orch.snapshot.state_filter == ""

    def test_state_options(self):
        orch = RecomputeOrchestrator()
        orch.set_records(_sample_records())
        assert orch.state_options() == ["down", "up"]


class TestListeners:
    def test_listener_receives_snapshots(self):
        orch = RecomputeOrchestrator()
        seen = []
        orch.subscribe(seen.append)
        orch.set_records(_sample_records())
        orch.set_state_filter("down")
        assert [s.generation for s in seen] == [1, 2]
        assert all(isinstance(s, GraphSnapshot) for s in seen)

    def test_unsubscribe(self):
        orch = RecomputeOrchestrator()
        seen = []
        unsubscribe = orch.subscribe(seen.append)
        unsubscribe()
        orch.set_records(_sample_records())
        assert seen == []

    def test_change_from_listener_runs_after_pass(self):
        orch = RecomputeOrchestrator()
        seen = []

        def listener(snapshot):
            seen.append((snapshot.generation, snapshot.state_filter))
            if snapshot.generation == 1:
                orch.set_state_filter("up")

        orch.subscribe(listener)
        orch.set_records(_sample_records())
        assert seen == [(1, ""), (2, "up")]
        assert orch.snapshot.state_filter == "up"
        assert _node_ids(orch.snapshot) == ["peer-10.0.0.1", "vsi-1"]


class TestRefresh:
    def test_latest_ticket_applies(self):
        orch = RecomputeOrchestrator()
        ticket = orch.begin_refresh()
        assert orch.loading
        assert orch.complete_refresh(ticket, _sample_records())
        assert not orch.loading
        assert len(orch.snapshot.nodes) == 3

    def test_superseded_result_dropped(self):
        orch = RecomputeOrchestrator()
        first = orch.begin_refresh()
        second = orch.begin_refresh()
        assert orch.complete_refresh(second, _sample_records())
        assert not orch.complete_refresh(first, _other_records())
        assert _node_ids(orch.snapshot) == ["peer-10.0.0.1", "vsi-1", "vsi-2"]

    def test_superseded_result_dropped_before_latest_arrives(self):
        orch = RecomputeOrchestrator()
        first = orch.begin_refresh()
        second = orch.begin_refresh()
        assert not orch.complete_refresh(first, _other_records())
        assert orch.snapshot.generation == 0
        assert orch.loading
        orch.complete_refresh(second, _sample_records())
        assert len(orch.snapshot.nodes) == 3

    def test_failure_keeps_last_good_graph(self):
        orch = RecomputeOrchestrator()
        orch.complete_refresh(orch.begin_refresh(), _sample_records())
        good = orch.snapshot
        ticket = orch.begin_refresh()
        assert orch.fail_refresh(ticket, "connection refused")
        assert orch.error == "connection refused"
        assert orch.snapshot is good
        assert not orch.loading

    def test_success_clears_error(self):
        orch = RecomputeOrchestrator()
        orch.fail_refresh(orch.begin_refresh(), "timeout")
        orch.complete_refresh(orch.begin_refresh(), _sample_records())
        assert orch.error is None

    def test_superseded_failure_ignored(self):
        orch = RecomputeOrchestrator()
        first = orch.begin_refresh()
        orch.begin_refresh()
        assert not orch.fail_refresh(first, "timeout")
        assert orch.error is None

    def test_refresh_with_fetch(self):
        orch = RecomputeOrchestrator()
        assert orch.refresh(_sample_records)
        assert len(orch.snapshot.nodes) == 3

    def test_refresh_fetch_error(self):
        orch = RecomputeOrchestrator()
        orch.refresh(_sample_records)

        def broken():
            raise DataSourceError("HTTP 500")

        assert not orch.refresh(broken)
        assert orch.error == "HTTP 500"
        assert len(orch.snapshot.nodes) == 3

    def test_refresh_unexpected_error_ends_loading(self):
        orch = RecomputeOrchestrator()
        orch.refresh(_sample_records)

        def bad_payload():
            raise ContractViolationError("VSI payload must be a list, got dict")

        with pytest.raises(ContractViolationError):
            orch.refresh(bad_payload)
        assert not orch.loading
        assert orch.error == "VSI payload must be a list, got dict"
        assert len(orch.snapshot.nodes) == 3

    def test_complete_refresh_with_bad_records(self):
        orch = RecomputeOrchestrator()
        ticket = orch.begin_refresh()
        with pytest.raises(ContractViolationError):
            orch.complete_refresh(ticket, [VsiRecord(id=None)])
        assert not orch.loading
        assert orch.error is not None

    def test_refresh_keeps_filters(self):
        orch = RecomputeOrchestrator()
        orch.set_state_filter("up")
        orch.refresh(_sample_records)
        assert _node_ids(orch.snapshot) == ["peer-10.0.0.1", "vsi-1"]
