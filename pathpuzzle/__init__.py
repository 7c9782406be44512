"""Constraint engine for single-stroke path puzzles on a 4x4 cell board.

This package exposes the public API surface via:

- ``pathpuzzle.engine.generator.PuzzleGenerator``: assembles a seeded board.
- ``pathpuzzle.engine.validator.PuzzleValidator``: checks a path against placed symbols.
- ``pathpuzzle.engine.solver.solve_puzzle``: CP-SAT search for any valid path.
- ``pathpuzzle.symbols.registry.RULES``: per-kind check and generation entry points.
"""

from .engine.generator import GeneratorConfig, PuzzleGenerator, PuzzleResult
from .engine.solver import solve_puzzle
from .engine.validator import PuzzleValidator, ValidationResult
from .symbols.registry import RULES, get_rule

__all__ = [
    "GeneratorConfig",
    "PuzzleGenerator",
    "PuzzleResult",
    "PuzzleValidator",
    "ValidationResult",
    "RULES",
    "get_rule",
    "solve_puzzle",
]

__version__ = "0.1.0"
