"""End-to-end tests of the flight computer control loop.

Flies a two-stage vehicle (core burns 100 s, upper stage has no staging
actions) against a solver that counts tgo down to a cutoff at t=150 s,
ticking once per second from T-4 s.
"""

import pytest
from numpy.testing import assert_allclose

from ascent.config import FlightPlan, FlightSettings
from ascent.diagnostics import Priority
from ascent.events import Event, EventAction
from avionics import FlightComputer
from conftest import ClockProvider, LinearSolver

SETTINGS = dict(
    staging_lead_time=5.0,
    finalization_time=5.0,
    guidance_activation=10.0,
    countdown=3,
)


def fly(fc: FlightComputer, provider: ClockProvider, start: int, stop: int) -> None:
    """Tick once per second over [start, stop]."""
    for t in range(start, stop + 1):
        provider.time = float(t)
        fc.tick()


def frame_at(fc: FlightComputer, time: float):
    return next(f for f in fc.log.frames if f.time == time)


@pytest.fixture
def provider():
    return ClockProvider(time=-4.0)


@pytest.fixture
def flight(two_stage_vehicle, target, provider, actuator, sink):
    solver = LinearSolver(cutoff=150.0)
    sequence = [
        Event(5.0, EventAction.THROTTLE, "", {"value": 0.9}),
        Event(20.0, EventAction.ROLL, "Roll program", {"angle": 45.0}),
        Event(50.0, EventAction.JETTISON, "Fairing", {"mass_lost": 500.0}),
    ]
    fc = FlightComputer(
        two_stage_vehicle, target, solver, provider, actuator,
        sink=sink, settings=FlightSettings(**SETTINGS), sequence=sequence,
    )
    fc.start(liftoff_time=0.0)
    return fc, solver


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Test start and tick preconditions."""

    def test_tick_before_start(self, two_stage_vehicle, target, provider, actuator):
        """Test ticking before start is an error."""
        fc = FlightComputer(two_stage_vehicle, target, LinearSolver(), provider, actuator)
        with pytest.raises(RuntimeError):
            fc.tick()

    def test_start_twice(self, flight):
        """Test liftoff time is fixed once."""
        fc, _ = flight
        with pytest.raises(RuntimeError):
            fc.start(liftoff_time=1.0)

    def test_start_locks_first_stage(self, flight):
        """Test start freezes m0 of the first stage only."""
        fc, _ = flight
        assert fc.stages[0].m0_locked
        assert not fc.stages[1].m0_locked

    def test_no_stages(self, target, provider, actuator):
        """Test a vehicle without stages is rejected."""
        with pytest.raises(ValueError):
            FlightComputer([], target, LinearSolver(), provider, actuator)

    def test_countdown(self, flight, provider, sink):
        """Test the system table counts down to liftoff."""
        fc, _ = flight
        fly(fc, provider, -4, 0)
        texts = [m.text for m in sink.messages]
        assert texts[:4] == ["T-3", "T-2", "T-1", "Liftoff"]


# =============================================================================
# Open Loop
# =============================================================================


class TestOpenLoop:
    """Test behavior before guidance activation."""

    def test_open_loop_throttle(self, flight, provider):
        """Test user throttle before guidance, solver untouched."""
        fc, solver = flight
        fly(fc, provider, -4, 9)
        assert frame_at(fc, 4.0).throttle == 1.0
        assert frame_at(fc, 5.0).throttle == 0.9
        assert solver.initialize_calls == 0
        assert not frame_at(fc, 9.0).guidance_active

    def test_no_attitude_before_guidance(self, flight, provider, actuator):
        """Test no steering is sent before guidance activation."""
        fc, _ = flight
        fly(fc, provider, -4, 9)
        assert actuator.attitudes == []


# =============================================================================
# Closed Loop
# =============================================================================


class TestClosedLoop:
    """Test guidance, staging and cutoff through the loop."""

    def test_guidance_converges_after_activation(self, flight, provider, actuator):
        """Test steering starts one cycle after activation."""
        fc, solver = flight
        fly(fc, provider, -4, 10)
        assert solver.initialize_calls == 1
        assert actuator.attitudes == []

        fly(fc, provider, 11, 11)
        assert len(actuator.attitudes) == 1
        assert actuator.attitudes[0][1] == 0.0
        assert frame_at(fc, 11.0).converged
        assert frame_at(fc, 11.0).throttle == 1.0

    def test_roll_event_applied(self, flight, provider, actuator):
        """Test the roll program reaches the attitude command."""
        fc, _ = flight
        fly(fc, provider, -4, 20)
        assert actuator.attitudes[-1][1] == 45.0

    def test_jettison_respects_locked_m0(self, flight, provider):
        """Test fairing jettison skips the locked m0."""
        fc, _ = flight
        upper_m0 = fc.stages[1].m0
        fly(fc, provider, -4, 50)
        assert_allclose(fc.stages[0].m0, 50000.0)
        assert_allclose(fc.stages[0].mass_total, 49500.0)
        assert_allclose(fc.stages[1].m0, upper_m0 - 500.0)

    def test_staging_handoff(self, flight, provider, actuator, sink):
        """Test guidance re-converges on the upper stage across staging."""
        fc, solver = flight
        fly(fc, provider, -4, 94)
        assert solver.solve_calls[-1] == (2, 94.0)
        attitudes = len(actuator.attitudes)

        fly(fc, provider, 95, 100)
        assert frame_at(fc, 94.0).converged
        assert not frame_at(fc, 95.0).converged
        assert not frame_at(fc, 96.0).converged
        frame = frame_at(fc, 97.0)
        assert frame.active_stage == 1
        assert frame.staging
        assert solver.solve_calls[-1][0] == 1
        # Reset on the staging notification, attitude held until re-converged
        assert sink.count(Priority.CRITICAL) == 1
        assert solver.initialize_calls == 2
        assert len(actuator.attitudes) == attitudes
        assert not frame_at(fc, 100.0).staging
        # One pass at ignition, latched on the next cycle
        assert not frame_at(fc, 100.0).converged

        fly(fc, provider, 101, 101)
        assert frame_at(fc, 101.0).converged
        assert len(actuator.attitudes) == attitudes + 1

    def test_terminal_count_and_cutoff(self, flight, provider, actuator, sink):
        """Test terminal count freezes steering and cuts off at t=150."""
        fc, _ = flight
        fly(fc, provider, -4, 149)
        assert fc.guidance.terminal
        assert_allclose(fc.guidance.cutoff_time, 150.0)
        assert not fc.complete
        assert frame_at(fc, 149.0).throttle == 1.0

        fly(fc, provider, 150, 152)
        assert fc.complete
        assert actuator.throttles[-3:] == [0.0, 0.0, 0.0]
        assert any(m.text.startswith("MECO") for m in sink.messages)

    def test_telemetry(self, flight, provider):
        """Test one frame per tick and dataframe export."""
        fc, _ = flight
        fly(fc, provider, -4, 30)
        df = fc.log.to_dataframe()
        assert df.height == 35
        assert "tgo" in df.columns
        assert df["guidance_active"].sum() == 21
        assert_allclose(fc.log.time[0], -4.0)


# =============================================================================
# Flight Plan
# =============================================================================


class TestFromPlan:
    """Test construction from a flight plan."""

    @pytest.fixture
    def plan(self):
        return FlightPlan.from_dict({
            "vehicle": [{
                "name": "Core",
                "engines": [{"isp": 333.4, "thrust": 981000, "flow": 300}],
                "mass_total": 50000,
                "mass_fuel": 30000,
                "gLim": 3,
            }],
            "mission": {"periapsis": 200000, "apoapsis": 200000},
            "settings": {"guidance_activation": 0},
        })

    def test_split_applied(self, plan, provider, actuator):
        """Test plan stages are split at their acceleration limit."""
        fc = FlightComputer.from_plan(plan, LinearSolver(), provider, actuator)
        assert [s.name for s in fc.stages] == ["Core", "Core (const-g)"]
        assert fc.sequencer.table.events[0].action == EventAction.PRESTAGE

    def test_plan_reusable(self, plan, provider, actuator):
        """Test two computers built from one plan split independently."""
        first = FlightComputer.from_plan(plan, LinearSolver(), provider, actuator)
        second = FlightComputer.from_plan(plan, LinearSolver(), provider, actuator)
        assert [s.name for s in first.stages] == ["Core", "Core (const-g)"]
        assert [s.name for s in second.stages] == ["Core", "Core (const-g)"]
        assert first.stages[0] is not second.stages[0]

        # The plan itself is never split or locked
        assert len(plan.stages) == 1
        assert_allclose(plan.stages[0].max_t, 100.0)
        assert plan.stages[0].acceleration_limit == 3.0

        first.start(liftoff_time=0.0)
        assert not second.stages[0].m0_locked
        assert not plan.stages[0].m0_locked
