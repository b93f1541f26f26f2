"""Tests for the two-phase DeletionWorkflow."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from zonectl.domain.errors import AuthorizationError, NoPendingRequestError, NotFoundError
from zonectl.domain.geometry import Position
from zonectl.domain.lifecycle import DeletionState
from zonectl.infrastructure.channel import RecordingChannel
from zonectl.infrastructure.world import World
from zonectl.services.deletion import DeletionWorkflow, outcome_key, pending_key
from zonectl.services.ledger import Ledger, zone_key
from zonectl.services.reconciler import ProtectionReconciler
from zonectl.services.teams import TeamDirectory, team_key
from zonectl.services.zones import ZoneService

KEY = ("alice", "north_base")


@pytest.fixture
def service(world: World) -> ZoneService:
    svc = ZoneService(world)
    result = svc.create_zone("North Base", "", "alice", at=Position(x=100, y=64, z=100))
    assert result.ok, result.error
    return svc


@pytest.fixture
def workflow(service: ZoneService) -> DeletionWorkflow:
    return service.deletions


def workflow_on(world: World, service: ZoneService, channel: RecordingChannel) -> DeletionWorkflow:
    settings = world.settings
    return DeletionWorkflow(
        world.store,
        service.registry,
        TeamDirectory(world.store),
        Ledger(world.store),
        ProtectionReconciler(channel, settings.zones, settings.reconciler, sleep=lambda _: None),
        world.timers,
        window=settings.deletion.confirm_window_seconds,
        clock=world.clock,
    )


class TestRequest:
    def test_writes_token_and_arms_timer(
        self, world: World, workflow: DeletionWorkflow, timers: Any, clock: Any
    ) -> None:
        pending = workflow.request_delete("north_base", "alice")
        assert pending.requested_at == clock.now
        assert pending.expires_at(workflow.window) == clock.now + 60
        entry = world.store.get(pending_key("alice", "north_base"))
        assert entry.value == {
            "zone_id": "north_base",
            "requester": "alice",
            "requested_at": clock.now,
        }
        assert timers.pending[KEY][0] == 60
        assert workflow.state("north_base", "alice") is DeletionState.PENDING

    def test_unknown_zone(self, workflow: DeletionWorkflow) -> None:
        with pytest.raises(NotFoundError):
            workflow.request_delete("nowhere", "alice")

    @pytest.mark.parametrize("player", ["bob", "dave", "mallory"])
    def test_only_owning_leader(self, workflow: DeletionWorkflow, player: str) -> None:
        with pytest.raises(AuthorizationError):
            workflow.request_delete("north_base", player)
        assert workflow.state("north_base", player) is DeletionState.NONE


class TestConfirm:
    def test_without_request(self, workflow: DeletionWorkflow, service: ZoneService) -> None:
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete("north_base", "alice")
        assert service.registry.get("north_base") is not None

    def test_within_window_removes_zone(
        self,
        world: World,
        service: ZoneService,
        workflow: DeletionWorkflow,
        channel: RecordingChannel,
        timers: Any,
        clock: Any,
    ) -> None:
        zone = service.registry.require("north_base")
        workflow.request_delete("north_base", "alice")
        clock.advance(59)
        channel.clear()

        outcome = workflow.confirm_delete("north_base", "alice")

        assert outcome.removed == 27
        assert outcome.teardown_error is None
        expected = workflow_on(world, service, RecordingChannel())._reconciler.plan_teardown(zone)
        assert channel.commands == [p.command for p in expected]
        assert service.registry.get("north_base") is None
        assert not world.store.get(pending_key("alice", "north_base")).exists
        assert timers.armed() == []
        assert workflow.state("north_base", "alice") is DeletionState.CONFIRMED
        # The claim fee is not refunded.
        assert Ledger(world.store).balance("alice").amount == 4

    def test_expired_request_is_refused(
        self,
        world: World,
        service: ZoneService,
        workflow: DeletionWorkflow,
        channel: RecordingChannel,
        clock: Any,
    ) -> None:
        workflow.request_delete("north_base", "alice")
        clock.advance(61)
        channel.clear()

        with pytest.raises(NoPendingRequestError) as excinfo:
            workflow.confirm_delete("north_base", "alice")

        assert "expired" in excinfo.value.message
        assert service.registry.get("north_base") is not None
        assert channel.commands == []
        assert not world.store.get(pending_key("alice", "north_base")).exists
        assert workflow.state("north_base", "alice") is DeletionState.EXPIRED

    def test_window_end_is_exclusive(self, workflow: DeletionWorkflow, clock: Any) -> None:
        workflow.request_delete("north_base", "alice")
        clock.advance(60)
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete("north_base", "alice")

    def test_rerequest_rearms(
        self, service: ZoneService, workflow: DeletionWorkflow, clock: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        clock.advance(45)
        workflow.request_delete("north_base", "alice")
        clock.advance(45)
        workflow.confirm_delete("north_base", "alice")
        assert service.registry.get("north_base") is None

    def test_token_survives_restart(
        self, world: World, service: ZoneService, workflow: DeletionWorkflow
    ) -> None:
        workflow.request_delete("north_base", "alice")
        fresh = ZoneService(world).deletions
        assert fresh.state("north_base", "alice") is DeletionState.PENDING
        fresh.confirm_delete("north_base", "alice")
        assert service.registry.get("north_base") is None
        assert fresh.state("north_base", "alice") is DeletionState.CONFIRMED

    def test_zone_vanished(
        self, world: World, workflow: DeletionWorkflow, timers: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        world.store.delete(zone_key("north_base"))

        with pytest.raises(NotFoundError):
            workflow.confirm_delete("north_base", "alice")

        assert not world.store.get(pending_key("alice", "north_base")).exists
        assert timers.armed() == []
        assert workflow.state("north_base", "alice") is DeletionState.NONE

    def test_requester_lost_leadership(
        self, world: World, service: ZoneService, workflow: DeletionWorkflow
    ) -> None:
        workflow.request_delete("north_base", "alice")
        team = TeamDirectory(world.store).get("red")
        assert team is not None
        world.store.set(team_key("red"), team.model_copy(update={"leader": "bob"}).model_dump())

        with pytest.raises(AuthorizationError):
            workflow.confirm_delete("north_base", "alice")
        assert service.registry.get("north_base") is not None

    def test_teardown_failure_still_deletes(
        self,
        world: World,
        service: ZoneService,
        failing_channel: Callable[[int], RecordingChannel],
    ) -> None:
        broken = workflow_on(world, service, failing_channel(3))
        broken.request_delete("north_base", "alice")

        outcome = broken.confirm_delete("north_base", "alice")

        assert outcome.teardown_error is not None
        assert outcome.teardown_error.step == 3
        assert outcome.removed == 3
        assert service.registry.get("north_base") is None
        assert broken.state("north_base", "alice") is DeletionState.CONFIRMED


class TestExpiryTimer:
    def test_fire_drops_token(
        self, world: World, workflow: DeletionWorkflow, timers: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        timers.fire(KEY)

        assert not world.store.get(pending_key("alice", "north_base")).exists
        assert workflow.state("north_base", "alice") is DeletionState.EXPIRED
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete("north_base", "alice")

    def test_stale_timer_spares_newer_request(
        self, world: World, workflow: DeletionWorkflow, timers: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        _, stale = timers.pending[KEY]
        workflow.request_delete("north_base", "alice")

        stale()

        assert world.store.get(pending_key("alice", "north_base")).exists
        assert workflow.state("north_base", "alice") is DeletionState.PENDING

    def test_shutdown_cancels_timers(self, workflow: DeletionWorkflow, timers: Any) -> None:
        workflow.request_delete("north_base", "alice")
        workflow.shutdown()
        assert timers.armed() == []


class TestOutcomeRecords:
    def test_expired_outcome_survives_restart(
        self, world: World, workflow: DeletionWorkflow, timers: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        timers.fire(KEY)
        assert world.store.get(outcome_key("alice", "north_base")).value == "expired"
        fresh = ZoneService(world).deletions
        assert fresh.state("north_base", "alice") is DeletionState.EXPIRED

    def test_confirmed_outcome_survives_restart(
        self, world: World, workflow: DeletionWorkflow
    ) -> None:
        workflow.request_delete("north_base", "alice")
        workflow.confirm_delete("north_base", "alice")
        fresh = ZoneService(world).deletions
        assert fresh.state("north_base", "alice") is DeletionState.CONFIRMED

    def test_new_request_clears_outcome(
        self, world: World, service: ZoneService, workflow: DeletionWorkflow, timers: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        timers.fire(KEY)
        workflow.request_delete("north_base", "alice")
        assert not world.store.get(outcome_key("alice", "north_base")).exists
        assert workflow.state("north_base", "alice") is DeletionState.PENDING

    def test_no_cycle_state_kept_in_memory(self, workflow: DeletionWorkflow, timers: Any) -> None:
        for _ in range(3):
            workflow.request_delete("north_base", "alice")
            timers.fire(KEY)
        assert not hasattr(workflow, "_states")

    def test_late_confirm_records_expiry(
        self, world: World, workflow: DeletionWorkflow, clock: Any
    ) -> None:
        workflow.request_delete("north_base", "alice")
        clock.advance(61)
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete("north_base", "alice")
        assert world.store.get(outcome_key("alice", "north_base")).value == "expired"

    @pytest.mark.parametrize("bad", ["", "a/b"])
    def test_unstorable_names(self, workflow: DeletionWorkflow, bad: str) -> None:
        assert workflow.state(bad, "alice") is DeletionState.NONE
        assert workflow.state("north_base", bad) is DeletionState.NONE
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete(bad, "alice")
        with pytest.raises(NoPendingRequestError):
            workflow.confirm_delete("north_base", bad)
