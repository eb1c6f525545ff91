"""Unit tests for the automatic staging sequencer."""

import pytest
from numpy.testing import assert_allclose

from ascent.diagnostics import Priority
from ascent.events import DeadlineQueue, EventAction
from ascent.vehicle import (
    Engine,
    Ignition,
    Jettison,
    Stage,
    StagingDescriptor,
    UllageMethod,
    prepare_stages,
    split_stages,
)
from avionics.sequencing import StagePhase, StagingSequencer, build_staging_events
from avionics.state import FlightState


def vehicle(ullage: UllageMethod = UllageMethod.RCS, ignition: bool = True) -> list[Stage]:
    """Core burns 100 s, upper needs separation, ullage and ignition."""
    return prepare_stages([
        Stage(
            name="Core",
            engines=[Engine(isp=333.4, thrust=981000.0, flow=300.0)],
            mass_total=50000.0,
            mass_fuel=30000.0,
        ),
        Stage(
            name="Upper",
            engines=[Engine(isp=340.0, thrust=200000.0, flow=60.0)],
            mass_total=15000.0,
            mass_fuel=10000.0,
            staging=StagingDescriptor(
                jettison=Jettison(enabled=True, wait_before_jettison=2.0),
                ignition=Ignition(
                    enabled=ignition,
                    ullage=ullage,
                    wait_before_ignition=1.0,
                    ullage_burn_duration=3.0,
                    post_ullage_burn=2.0,
                ),
            ),
        ),
    ])


# =============================================================================
# Event Table Construction
# =============================================================================


class TestBuildStagingEvents:
    """Test the staging timeline."""

    def test_full_sequence_timeline(self):
        """Test prestage, separation, ullage and ignition times."""
        events = build_staging_events(vehicle(), lead_time=5.0)
        timeline = [(e.time, e.action) for e in events]
        assert timeline == [
            (95.0, EventAction.PRESTAGE),
            (100.0, EventAction.ACTIVATE),
            (102.0, EventAction.SEPARATE),
            (103.0, EventAction.ULLAGE_START),
            (106.0, EventAction.IGNITION),
            (108.0, EventAction.ULLAGE_STOP),
        ]
        assert all(e.payload["stage"] == 1 for e in events)

    def test_srb_ullage_has_no_stop(self):
        """Test SRB ullage burns out on its own."""
        events = build_staging_events(vehicle(UllageMethod.SRB), lead_time=5.0)
        actions = [e.action for e in events]
        assert EventAction.ULLAGE_START in actions
        assert EventAction.ULLAGE_STOP not in actions

    def test_no_ullage(self):
        """Test ignition follows the ignition wait without ullage."""
        events = build_staging_events(vehicle(UllageMethod.NONE), lead_time=5.0)
        ignition = [e for e in events if e.action == EventAction.IGNITION][0]
        assert ignition.time == 103.0

    def test_single_stage_has_no_events(self):
        """Test a single stage needs no staging."""
        assert build_staging_events(vehicle()[:1], lead_time=5.0) == []

    def test_next_activation_follows_ignition(self):
        """Test the next burn is timed from the previous ignition."""
        stages = vehicle()
        stages.append(prepare_stages([Stage(
            name="Kick", engines=[Engine(isp=300.0, thrust=3e4, flow=10.0)],
            mass_total=2000.0, mass_fuel=1000.0,
        )])[0])
        events = build_staging_events(stages, lead_time=5.0)
        activate = [e for e in events if e.action == EventAction.ACTIVATE]
        assert activate[1].payload["stage"] == 2
        assert_allclose(activate[1].time, 106.0 + stages[1].max_t)
        handoff = stages[1].staging.sequence_duration
        assert_allclose(activate[1].time, 100.0 + handoff + stages[1].max_t)

    def test_jettison_only_timeline(self):
        """Test a stage without an ignition step burns from separation."""
        stages = vehicle(ignition=False)
        stages.append(prepare_stages([Stage(
            name="Kick", engines=[Engine(isp=300.0, thrust=3e4, flow=10.0)],
            mass_total=2000.0, mass_fuel=1000.0,
        )])[0])
        events = build_staging_events(stages, lead_time=5.0)
        actions = [e.action for e in events if e.payload["stage"] == 1]
        assert actions == [EventAction.PRESTAGE, EventAction.ACTIVATE, EventAction.SEPARATE]
        activate = [e for e in events if e.action == EventAction.ACTIVATE]
        assert_allclose(activate[1].time, 102.0 + stages[1].max_t)

    def test_prestage_not_before_previous_ignition(self):
        """Test a long lead time is clamped to the previous ignition."""
        stages = split_stages(prepare_stages([Stage(
            name="Core",
            engines=[Engine(isp=333.4, thrust=981000.0, flow=300.0)],
            mass_total=50000.0,
            mass_fuel=30000.0,
            acceleration_limit=3.0,
        )]))
        events = build_staging_events(stages, lead_time=80.0)
        assert events[0].action == EventAction.PRESTAGE
        assert events[0].time == 0.0

    def test_zero_lead_time_keeps_prestage_first(self):
        """Test prestage sorts before activation at equal times."""
        events = build_staging_events(vehicle(), lead_time=0.0)
        assert events[0].action == EventAction.PRESTAGE
        assert events[1].action == EventAction.ACTIVATE
        assert events[0].time == events[1].time


# =============================================================================
# Sequencer
# =============================================================================


class TestStagingSequencer:
    """Test the staging state machine against a recording actuator."""

    @pytest.fixture
    def run(self, actuator, sink):
        def _run(stages, lead_time=5.0):
            state = FlightState(liftoff_time=0.0)
            queue = DeadlineQueue()
            seq = StagingSequencer(stages, state, actuator, sink, queue, lead_time=lead_time)
            seq.table.invoke(0.0)

            def advance(now):
                for tag in queue.pop_due(now):
                    assert tag == StagingSequencer.TABLE
                    seq.table.invoke(0.0)

            return seq, state, advance
        return _run

    def test_prestage(self, run):
        """Test prestage switches the active stage and notifies guidance."""
        seq, state, advance = run(vehicle())
        advance(94.9)
        assert state.active_stage == 0
        advance(95.0)
        assert state.active_stage == 1
        assert state.staging_in_progress
        assert seq.stages[1].m0_locked
        assert len(state.notifications) == 1
        assert state.notifications[0].stage_index == 1
        assert state.notifications[0].time == 95.0

    def test_full_handoff(self, run, actuator):
        """Test separation, RCS ullage and ignition through the actuator."""
        seq, state, advance = run(vehicle())
        advance(100.0)
        assert seq.phases[1] == StagePhase.AWAITING_JETTISON
        assert actuator.staging_triggers == 0

        advance(102.0)
        assert actuator.staging_triggers == 1
        assert seq.phases[1] == StagePhase.AWAITING_ULLAGE

        advance(103.0)
        assert actuator.ullage == [True]
        assert seq.phases[1] == StagePhase.AWAITING_IGNITION
        assert state.staging_in_progress

        advance(106.0)
        assert actuator.staging_triggers == 2
        assert seq.phases[1] == StagePhase.STEADY_BURN
        assert not state.staging_in_progress

        advance(108.0)
        assert actuator.ullage == [True, False]
        assert seq.table.exhausted

    def test_srb_ullage_fires_staging(self, run, actuator):
        """Test SRB ullage is lit by a staging trigger."""
        seq, state, advance = run(vehicle(UllageMethod.SRB))
        advance(103.0)
        assert actuator.staging_triggers == 2
        assert actuator.ullage == []
        advance(106.0)
        assert actuator.staging_triggers == 3

    def test_derived_stage_activates_without_actions(self, run, actuator):
        """Test a const-g stage hands off with no actuator commands."""
        stages = split_stages(prepare_stages([Stage(
            name="Core",
            engines=[Engine(isp=333.4, thrust=981000.0, flow=300.0)],
            mass_total=50000.0,
            mass_fuel=30000.0,
            acceleration_limit=3.0,
        )]))
        seq, state, advance = run(stages)
        limit_time = stages[0].max_t

        advance(limit_time - 5.0)
        assert state.active_stage == 1
        assert state.staging_in_progress

        advance(limit_time)
        assert not state.staging_in_progress
        assert seq.phases[1] == StagePhase.STEADY_BURN
        assert actuator.staging_triggers == 0

    def test_messages_reported(self, run, sink):
        """Test every staging event reaches the sink."""
        _, _, advance = run(vehicle())
        advance(200.0)
        texts = [m.text for m in sink.messages]
        assert "Separation" in texts
        assert "Upper ignition" in texts
        assert all(m.priority == Priority.LOW for m in sink.messages)

    def test_jettison_without_ignition_releases_at_activation(self, run, actuator):
        """Test staging ends at activation when no ignition step follows."""
        seq, state, advance = run(vehicle(ignition=False))
        advance(99.0)
        assert state.staging_in_progress

        advance(100.0)
        assert not state.staging_in_progress
        assert seq.phases[1] == StagePhase.AWAITING_JETTISON
        assert actuator.staging_triggers == 0

        advance(102.0)
        assert actuator.staging_triggers == 1
        assert seq.phases[1] == StagePhase.STEADY_BURN
        assert actuator.ullage == []
        assert seq.table.exhausted
