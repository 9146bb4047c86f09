"""
Shared fixtures for the Tetris RL tests.
"""

import pytest

from configs import ACTIONS
from controller import EpisodeController
from helpers import calculate_state_features
from tetris_game import Board, piece_by_name, spawn_piece


@pytest.fixture
def board():
    """An empty 20x10 board."""
    return Board()


@pytest.fixture
def spawned_piece(board):
    """Factory for a named piece spawned at the top of the board fixture."""
    def _make(name="O"):
        return spawn_piece(board, piece_by_name(name))
    return _make


@pytest.fixture
def features(board, spawned_piece):
    """Features of the empty board with an O piece at the spawn point."""
    return calculate_state_features(board, spawned_piece("O"), 0)


@pytest.fixture
def small_config():
    """Tabular run on a small board so episodes end quickly."""
    return {"agent": "tabular", "rows": 8, "cols": 6, "seed": 7, "max_episodes": 1000}


@pytest.fixture
def controller(small_config):
    handle = EpisodeController(small_config)
    handle.start_training()
    return handle


@pytest.fixture
def run_until():
    """Step ticks until predicate(outcome) holds; fail if it never does."""
    def _run(controller, predicate, max_ticks=20000):
        for _ in range(max_ticks):
            outcome = controller.tick()
            if predicate(outcome):
                return outcome
        pytest.fail(f"condition not reached within {max_ticks} ticks")
    return _run


@pytest.fixture
def actions():
    return list(ACTIONS)
