"""
exam_aco — Ant Colony Optimisation core for exam timetabling.

Public API:
    optimize          — run the colony, returns (assignments, fitness)
    Colony            — the optimisation loop, for callers that want the
                        pheromone grid or run metadata afterwards
    ColonyConfig      — every tunable of a run
    FitnessEvaluator  — scores a candidate schedule
    PenaltyWeights    — fitness term weights
    split_exam_into_rooms — seat one oversized exam across several rooms

Usage:
    import numpy as np
    from exam_aco import optimize

    schedule, fitness = optimize(model, num_ants=20, max_iterations=50,
                                 rng=np.random.default_rng(7))
"""

from exam_aco.colony import Colony, ColonyConfig, ColonyObserver, ColonyResult, optimize
from exam_aco.fitness import FitnessBreakdown, FitnessEvaluator, PenaltyWeights
from exam_aco.splitter import can_fit_all_exams, split_exam_into_rooms, total_capacity

__all__ = [
    "Colony",
    "ColonyConfig",
    "ColonyObserver",
    "ColonyResult",
    "optimize",
    "FitnessBreakdown",
    "FitnessEvaluator",
    "PenaltyWeights",
    "can_fit_all_exams",
    "split_exam_into_rooms",
    "total_capacity",
]
