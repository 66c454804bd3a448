"""
tests/test_aco_core.py
──────────────────────
Engine test suite — 3 groups covering the layers below the colony loop.

Reading guide
─────────────
Group 1 — PheromoneModel unit tests
    Initial state, heuristic formula and its capacity gate, evaporation,
    deposit arithmetic, id → index translation.

Group 2 — Room splitter unit tests
    Even division, remainder distribution, capacity clamping, the
    single-room fast path, and the "never zero, never over capacity"
    guarantee.

Group 3 — Ant construction tests
    One ant builds a schedule: placement, splitting, timeslot bias,
    the two selection fallbacks and the dropped-exam path.

Helpers
───────
_make_model() builds a ScheduleModel from compact (id, size) / (id, capacity)
tuples. Students are generated per exam so exams never share students
unless a test passes explicit lists.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from exam_aco.ant import Ant
from exam_aco.fitness import FitnessEvaluator
from exam_aco.pheromone import (
    DEPOSIT_CONSTANT,
    EVAPORATION_RATE,
    TAU_INITIAL,
    PheromoneModel,
)
from exam_aco.splitter import can_fit_all_exams, split_exam_into_rooms, total_capacity
from timetable.shared.models import Assignment, Exam, Room, ScheduleModel
from timetable.shared.telemetry import (
    WARNING_DEGENERATE_FALLBACK,
    WARNING_EXAM_DROPPED,
    RunWarning,
)


# ─────────────────────────────────────────────────────────────────────────────
# HELPERS — fixture factories
# ─────────────────────────────────────────────────────────────────────────────

def _make_exam(exam_id: str, size: int, students: Optional[List[str]] = None) -> Exam:
    return Exam(id=exam_id, students=students or [f"{exam_id}-s{n}" for n in range(size)])


def _make_model(
    exams: Sequence[Tuple[str, int]] = (("E1", 3),),
    rooms: Sequence[Tuple[str, int]] = (("R1", 5),),
    timeslots: Sequence[str] = ("T1",),
    students: Optional[Dict[str, List[str]]] = None,
) -> ScheduleModel:
    students = students or {}
    return ScheduleModel(
        exams=[_make_exam(e, n, students.get(e)) for e, n in exams],
        rooms=[Room(id=r, capacity=c) for r, c in rooms],
        students=[],
        timeslots=list(timeslots),
    )


def _make_ant(model: ScheduleModel, seed: int = 0, sink: Optional[List[RunWarning]] = None) -> Ant:
    pheromone = PheromoneModel(model)
    return Ant(
        model, pheromone, FitnessEvaluator(model), np.random.default_rng(seed),
        on_warning=sink.append if sink is not None else None,
        iteration=1,
    )


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 1 — PheromoneModel unit tests
# ─────────────────────────────────────────────────────────────────────────────

class TestPheromoneModel:

    def test_initial_shape_and_values(self):
        """Grid is (exams, timeslots, rooms) and every cell starts at TAU_INITIAL."""
        model = _make_model(
            exams=[("E1", 3), ("E2", 4)],
            rooms=[("R1", 5), ("R2", 10), ("R3", 2)],
            timeslots=["T1", "T2"],
        )
        p = PheromoneModel(model)
        assert p.shape == (2, 2, 3)
        assert np.allclose(p.snapshot(), TAU_INITIAL)
        assert p.heuristic.shape == (2, 2, 3)

    def test_defaults(self):
        p = PheromoneModel(_make_model())
        assert p.evaporation_rate == EVAPORATION_RATE
        assert p.deposit_constant == DEPOSIT_CONSTANT

    def test_heuristic_values(self):
        """
        η = size / capacity × (n_t − t) / n_t × 2.

        Exam of 3 in a room of 5 over 2 timeslots:
          t=0 → 0.6 × 2.0 = 1.2
          t=1 → 0.6 × 1.0 = 0.6
        """
        model = _make_model(rooms=[("R1", 5)], timeslots=["T1", "T2"])
        eta = PheromoneModel(model).heuristic
        assert np.isclose(eta[0, 0, 0], 1.2)
        assert np.isclose(eta[0, 1, 0], 0.6)

    def test_heuristic_zero_when_exam_exceeds_room(self):
        """A room too small for the whole exam has η = 0 at every timeslot."""
        model = _make_model(rooms=[("R1", 5), ("R2", 2)], timeslots=["T1", "T2"])
        eta = PheromoneModel(model).heuristic
        assert np.all(eta[0, :, 1] == 0.0)
        assert np.all(eta[0, :, 0] > 0.0)

    def test_heuristic_exact_fit_is_feasible(self):
        """size == capacity is a fit, utilisation 1.0."""
        model = _make_model(exams=[("E1", 5)], rooms=[("R1", 5)])
        eta = PheromoneModel(model).heuristic
        assert np.isclose(eta[0, 0, 0], 2.0)

    def test_heuristic_prefers_earlier_timeslots(self):
        model = _make_model(timeslots=["T1", "T2", "T3", "T4"])
        eta = PheromoneModel(model).heuristic[0, :, 0]
        assert np.all(np.diff(eta) < 0)

    def test_heuristic_is_read_only(self):
        p = PheromoneModel(_make_model())
        with pytest.raises(ValueError):
            p.heuristic[0, 0, 0] = 5.0

    def test_full_evaporation_zeroes_grid(self):
        """At the default ρ = 1.0 every cell is wiped."""
        p = PheromoneModel(_make_model(timeslots=["T1", "T2"]))
        p.evaporate()
        assert np.all(p.snapshot() == 0.0)

    def test_partial_evaporation(self):
        p = PheromoneModel(_make_model(), evaporation_rate=0.25)
        p.evaporate()
        assert np.allclose(p.snapshot(), 0.75)

    def test_zero_evaporation_is_noop(self):
        p = PheromoneModel(_make_model(), evaporation_rate=0.0)
        p.evaporate()
        assert np.allclose(p.snapshot(), TAU_INITIAL)

    def test_deposit_amount(self):
        """Δτ = 0.1 / (1 + fitness)."""
        p = PheromoneModel(_make_model())
        assert np.isclose(p.deposit_amount(0.0), 0.1)
        assert np.isclose(p.deposit_amount(9.0), 0.01)

    def test_deposit_single_cell(self):
        model = _make_model(rooms=[("R1", 5), ("R2", 5)], timeslots=["T1", "T2"])
        p = PheromoneModel(model, evaporation_rate=1.0)
        p.evaporate()
        p.deposit(0, 1, 0, 0.5)
        grid = p.snapshot()
        assert np.isclose(grid[0, 1, 0], 0.5)
        assert np.isclose(grid.sum(), 0.5)

    def test_deposit_solution_reinforces_every_assignment(self):
        """A split exam reinforces one cell per room it occupies."""
        model = _make_model(
            exams=[("E1", 12)],
            rooms=[("R1", 5), ("R2", 5), ("R3", 5)],
            timeslots=["T1", "T2"],
        )
        p = PheromoneModel(model)
        p.evaporate()
        solution = [
            Assignment(exam_id="E1", timeslot="T2", room_id="R1", student_count=4),
            Assignment(exam_id="E1", timeslot="T2", room_id="R3", student_count=4),
        ]
        reinforced = p.deposit_solution(solution, fitness=1.0)

        grid = p.snapshot()
        assert reinforced == 2
        assert np.isclose(grid[0, 1, 0], 0.05)
        assert np.isclose(grid[0, 1, 2], 0.05)
        assert np.isclose(grid.sum(), 0.1)

    def test_deposit_solution_skips_unknown_ids(self):
        p = PheromoneModel(_make_model())
        before = p.snapshot()
        reinforced = p.deposit_solution(
            [Assignment(exam_id="NOPE", timeslot="T1", room_id="R1", student_count=1)],
            fitness=0.0,
        )
        assert reinforced == 0
        assert np.allclose(p.snapshot(), before)

    def test_pheromone_view_tracks_live_grid(self):
        p = PheromoneModel(_make_model(), evaporation_rate=0.5)
        view = p.pheromone_view(0)
        p.evaporate()
        assert np.isclose(view[0, 0], 0.5)

    def test_snapshot_is_a_copy(self):
        p = PheromoneModel(_make_model())
        snap = p.snapshot()
        snap[0, 0, 0] = 99.0
        assert p.snapshot()[0, 0, 0] == TAU_INITIAL

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_invalid_evaporation_rate_raises(self, rate):
        with pytest.raises(ValueError):
            PheromoneModel(_make_model(), evaporation_rate=rate)

    def test_negative_deposit_constant_raises(self):
        with pytest.raises(ValueError):
            PheromoneModel(_make_model(), deposit_constant=-1.0)

    def test_repr_contains_shape(self):
        assert "(1, 1, 1)" in repr(PheromoneModel(_make_model()))


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 2 — Room splitter unit tests
# ─────────────────────────────────────────────────────────────────────────────

def _rooms(*capacities: int) -> List[Room]:
    return [Room(id=f"R{n + 1}", capacity=c) for n, c in enumerate(capacities)]


class TestSplitter:

    def test_even_split_across_three_rooms(self):
        """12 students, three rooms of 5 → 4 + 4 + 4."""
        parts = split_exam_into_rooms(_make_exam("E1", 12), "T1", _rooms(5, 5, 5))
        assert sorted(p.student_count for p in parts) == [4, 4, 4]
        assert {p.room_id for p in parts} == {"R1", "R2", "R3"}
        assert all(p.exam_id == "E1" and p.timeslot == "T1" for p in parts)

    def test_remainder_goes_to_first_rooms(self):
        """11 over three rooms of 5 → 4, 4, 3 in capacity order."""
        parts = split_exam_into_rooms(_make_exam("E1", 11), "T1", _rooms(5, 5, 5))
        assert [p.student_count for p in parts] == [4, 4, 3]
        assert [p.room_id for p in parts] == ["R1", "R2", "R3"]

    def test_single_room_when_largest_fits(self):
        """If the largest free room holds everyone, it alone is used."""
        parts = split_exam_into_rooms(_make_exam("E1", 4), "T1", _rooms(3, 6))
        assert len(parts) == 1
        assert parts[0].room_id == "R2"
        assert parts[0].student_count == 4

    def test_uses_only_as_many_rooms_as_needed(self):
        """10 students, largest room 6 → two rooms, not three."""
        parts = split_exam_into_rooms(_make_exam("E1", 10), "T1", _rooms(3, 6, 3))
        assert len(parts) == 2
        assert parts[0].room_id == "R2"

    def test_share_clamped_to_capacity(self):
        """
        10 students over rooms (6, 3): the even share of 5 overflows the
        3-seat room, so it is clamped and the exam is seated short.
        """
        parts = split_exam_into_rooms(_make_exam("E1", 10), "T1", _rooms(6, 3))
        assert [p.student_count for p in parts] == [5, 3]
        assert sum(p.student_count for p in parts) < 10

    def test_insufficient_rooms_partial_placement(self):
        """20 students, two rooms of 5 → 5 + 5 and 10 left unseated."""
        parts = split_exam_into_rooms(_make_exam("E1", 20), "T1", _rooms(5, 5))
        assert [p.student_count for p in parts] == [5, 5]

    def test_no_rooms_returns_empty(self):
        assert split_exam_into_rooms(_make_exam("E1", 10), "T1", []) == []

    def test_empty_exam_returns_empty(self):
        assert split_exam_into_rooms(Exam(id="E0", students=[]), "T1", _rooms(5)) == []

    def test_never_zero_never_over_capacity(self):
        """Every emitted share is in 1..capacity, whatever the inputs."""
        rng = np.random.default_rng(1234)
        for _ in range(200):
            size = int(rng.integers(1, 80))
            caps = [int(c) for c in rng.integers(1, 25, size=int(rng.integers(1, 6)))]
            rooms = _rooms(*caps)
            by_id = {r.id: r.capacity for r in rooms}
            parts = split_exam_into_rooms(_make_exam("E", size), "T1", rooms)
            assert parts, f"no parts for size={size}, caps={caps}"
            for p in parts:
                assert 0 < p.student_count <= by_id[p.room_id]
            assert len({p.room_id for p in parts}) == len(parts)
            assert sum(p.student_count for p in parts) <= size

    def test_total_capacity(self):
        assert total_capacity(_rooms(5, 10, 2)) == 17
        assert total_capacity([]) == 0

    def test_can_fit_all_exams(self):
        exams = [_make_exam("E1", 6), _make_exam("E2", 4)]
        assert can_fit_all_exams(exams, _rooms(5, 5))
        assert not can_fit_all_exams(exams, _rooms(5, 4))


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 3 — Ant construction tests
# ─────────────────────────────────────────────────────────────────────────────

class TestAnt:

    def test_single_exam_single_room(self):
        model = _make_model()
        ant = _make_ant(model)
        solution = ant.construct()
        assert solution == [Assignment(exam_id="E1", timeslot="T1", room_id="R1", student_count=3)]
        assert ant.fitness == 0.0
        assert ant.solution is solution

    def test_fitness_starts_infinite(self):
        assert _make_ant(_make_model()).fitness == float("inf")

    def test_every_exam_placed_once_with_room(self):
        model = _make_model(
            exams=[("E1", 3), ("E2", 4), ("E3", 2), ("E4", 5)],
            rooms=[("R1", 5), ("R2", 5)],
            timeslots=["T1", "T2", "T3"],
        )
        solution = _make_ant(model, seed=3).construct()
        assert sorted(a.exam_id for a in solution) == ["E1", "E2", "E3", "E4"]
        slots = [(a.timeslot, a.room_id) for a in solution]
        assert len(slots) == len(set(slots)), "room reused within a timeslot"

    def test_oversized_exam_is_split(self):
        """12 students, three rooms of 5, one timeslot → 4 + 4 + 4."""
        model = _make_model(exams=[("E1", 12)], rooms=[("R1", 5), ("R2", 5), ("R3", 5)])
        solution = _make_ant(model).construct()
        assert sorted(a.student_count for a in solution) == [4, 4, 4]
        assert all(a.exam_id == "E1" for a in solution)

    def test_earlier_timeslot_dominates(self):
        """
        With a 10× per-slot bias the first timeslot wins the large majority
        of placements while it has free rooms that fit.
        """
        model = _make_model(
            exams=[("E1", 3), ("E2", 3)],
            rooms=[("R1", 5), ("R2", 5)],
            timeslots=["T1", "T2"],
        )
        pheromone = PheromoneModel(model)
        evaluator = FitnessEvaluator(model)
        rng = np.random.default_rng(7)

        in_first = 0
        total = 0
        for _ in range(200):
            ant = Ant(model, pheromone, evaluator, rng)
            for a in ant.construct():
                total += 1
                in_first += a.timeslot == "T1"
        assert in_first / total > 0.8

    def test_falls_back_to_first_free_room_without_pheromone(self):
        """
        An evaporated grid gives every cell weight 0; the ant takes free
        rooms in timeslot-then-room order.
        """
        model = _make_model(
            exams=[("E1", 3), ("E2", 3)],
            rooms=[("R1", 5), ("R2", 5)],
            timeslots=["T1", "T2"],
        )
        pheromone = PheromoneModel(model)
        pheromone.evaporate()
        ant = Ant(model, pheromone, FitnessEvaluator(model), np.random.default_rng(0))
        solution = ant.construct()
        assert {(a.timeslot, a.room_id) for a in solution} == {("T1", "R1"), ("T1", "R2")}

    def test_degenerate_fallback_when_no_room_free(self):
        """Two exams, one room, one timeslot: the second lands on (0, 0) too."""
        model = _make_model(exams=[("E1", 3), ("E2", 3)], rooms=[("R1", 5)])
        sink: List[RunWarning] = []
        solution = _make_ant(model, sink=sink).construct()

        assert [(a.timeslot, a.room_id) for a in solution] == [("T1", "R1"), ("T1", "R1")]
        kinds = [w.kind for w in sink]
        assert kinds == [WARNING_DEGENERATE_FALLBACK]
        assert sink[0].iteration == 1

    def test_exam_dropped_when_nothing_free_and_too_big(self):
        """
        Two exams bigger than the only room: the first is seated partially,
        the second has nowhere to go and is dropped.
        """
        model = _make_model(exams=[("E1", 8), ("E2", 20)], rooms=[("R1", 5)])
        sink: List[RunWarning] = []
        ant = _make_ant(model, sink=sink)
        solution = ant.construct()

        assert len(solution) == 1
        assert solution[0].student_count == 5
        assert len(ant.dropped) == 1
        assert ant.dropped[0] != solution[0].exam_id
        assert sorted(w.kind for w in sink) == sorted(
            [WARNING_DEGENERATE_FALLBACK, WARNING_EXAM_DROPPED]
        )
        # Dropped exam costs the unassigned penalty; the partial one costs nothing.
        assert ant.fitness == 100.0 - 10.0

    def test_no_sink_discards_warnings(self):
        model = _make_model(exams=[("E1", 3), ("E2", 3)], rooms=[("R1", 5)])
        _make_ant(model).construct()

    def test_same_seed_same_solution(self):
        model = _make_model(
            exams=[("E1", 3), ("E2", 4), ("E3", 7), ("E4", 5)],
            rooms=[("R1", 5), ("R2", 4)],
            timeslots=["T1", "T2"],
        )
        a = _make_ant(model, seed=11).construct()
        b = _make_ant(model, seed=11).construct()
        assert a == b

    def test_repr(self):
        ant = _make_ant(_make_model())
        ant.construct()
        assert "placed=1/1" in repr(ant)
