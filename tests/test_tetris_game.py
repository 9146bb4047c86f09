"""
Tests for the board, piece catalog and piece movement.
"""

import random

import pytest

from tetris_game import (
    EMPTY,
    PIECE_NAMES,
    TETRIS_PIECES,
    Board,
    Piece,
    hard_drop,
    line_score,
    move_piece,
    piece_by_name,
    random_piece,
    rotate_matrix,
    rotate_piece,
    spawn_piece,
)


def fill_row(board, row, color="x", skip=()):
    for col in range(board.cols):
        if col not in skip:
            board.grid[row][col] = color


class TestPieces:
    def test_catalog_has_seven_pieces(self):
        assert len(TETRIS_PIECES) == 7
        assert len(PIECE_NAMES) == 7

    def test_rotate_matrix_clockwise(self):
        assert rotate_matrix([[0, 1, 0], [1, 1, 1]]) == [[1, 0], [1, 1], [1, 0]]
        assert rotate_matrix([[1, 1, 1, 1]]) == [[1], [1], [1], [1]]

    def test_four_rotations_return_to_start(self):
        shape = piece_by_name("L").shape
        rotated = shape
        for _ in range(4):
            rotated = rotate_matrix(rotated)
        assert rotated == shape

    @pytest.mark.parametrize("name, expected_x", [("I", 3), ("O", 4), ("T", 4)])
    def test_spawn_is_top_center(self, board, name, expected_x):
        piece = spawn_piece(board, piece_by_name(name))
        assert (piece.x, piece.y) == (expected_x, 0)

    def test_random_piece_comes_from_catalog(self):
        piece = random_piece(random.Random(0))
        assert (piece.shape, piece.color) in TETRIS_PIECES

    def test_snapshot_is_a_copy(self):
        piece = Piece([[1, 1]], "red", 2, 3)
        snap = piece.snapshot()
        snap["shape"][0][0] = 0
        assert piece.shape == [[1, 1]]
        assert (snap["x"], snap["y"], snap["color"]) == (2, 3, "red")


class TestCollision:
    def test_column_minus_one_collides(self, board):
        assert board.collides(Piece([[1, 1], [1, 1]], "c", -1, 5))

    def test_column_width_collides(self, board):
        assert board.collides(Piece([[1, 1], [1, 1]], "c", board.cols - 1, 5))

    def test_bottom_bound_collides(self, board):
        assert board.collides(Piece([[1]], "c", 0, board.rows))
        assert not board.collides(Piece([[1]], "c", 0, board.rows - 1))

    def test_overlap_collides(self, board):
        board.grid[10][3] = "x"
        assert board.collides(Piece([[1]], "c", 3, 10))

    def test_piece_above_grid_never_collides_with_contents(self, board):
        for row in range(board.rows):
            fill_row(board, row)
        assert not board.collides(Piece([[1, 1], [1, 1]], "c", 4, -2))

    def test_piece_above_grid_still_checks_walls(self, board):
        assert board.collides(Piece([[1, 1]], "c", -1, -3))

    def test_empty_cells_of_shape_are_ignored(self, board):
        board.grid[0][4] = "x"
        # T shape has an empty top-left corner
        assert not board.collides(Piece([[0, 1, 0], [1, 1, 1]], "c", 4, 0))


class TestBoard:
    def test_lock_skips_cells_above_grid(self, board):
        board.lock(Piece([[1, 1], [1, 1]], "c", 0, -1))
        assert board.grid[0][0] == "c"
        assert board.grid[0][1] == "c"
        assert all(cell == EMPTY for cell in board.grid[1])

    def test_clear_full_row_inserts_empty_top_row(self, board):
        fill_row(board, board.rows - 1)
        board.grid[board.rows - 2][0] = "a"

        assert board.clear_full_rows() == 1
        assert len(board.grid) == board.rows
        assert all(len(row) == board.cols for row in board.grid)
        assert all(cell == EMPTY for cell in board.grid[0])
        assert board.grid[board.rows - 1][0] == "a"

    def test_clear_keeps_order_of_remaining_rows(self, board):
        board.grid[15][0] = "top"
        fill_row(board, 16)
        board.grid[17][0] = "middle"
        fill_row(board, 18)
        board.grid[19][0] = "bottom"

        assert board.clear_full_rows() == 2
        assert board.grid[17][0] == "top"
        assert board.grid[18][0] == "middle"
        assert board.grid[19][0] == "bottom"

    def test_no_full_rows(self, board):
        fill_row(board, 19, skip={5})
        before = board.snapshot()
        assert board.clear_full_rows() == 0
        assert board.grid == before

    def test_dimensions_invariant(self, board):
        rng = random.Random(3)
        for _ in range(50):
            piece = spawn_piece(board, random_piece(rng))
            piece.x = rng.randrange(-1, board.cols)
            if board.collides(piece):
                continue
            hard_drop(board, piece)
            board.lock(piece)
            board.clear_full_rows()
            assert len(board.grid) == 20
            assert all(len(row) == 10 for row in board.grid)

    def test_top_row_occupied(self, board):
        assert not board.is_top_row_occupied()
        board.grid[0][9] = "x"
        assert board.is_top_row_occupied()

    def test_column_heights(self, board):
        board.grid[19][0] = "x"
        board.grid[12][3] = "x"
        heights = board.column_heights()
        assert heights[0] == 1
        assert heights[3] == 8
        assert heights[1] == 0

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            Board(0, 10)
        with pytest.raises(ValueError):
            Board(20, 0)

    @pytest.mark.parametrize("lines, score", [(0, 0), (1, 40), (2, 100), (3, 300), (4, 1200)])
    def test_line_scores(self, lines, score):
        assert line_score(lines) == score


class TestMovement:
    def test_move_reverts_on_collision(self, board):
        piece = Piece([[1, 1], [1, 1]], "c", 0, 0)
        assert not move_piece(board, piece, -1, 0)
        assert piece.x == 0
        assert move_piece(board, piece, 1, 0)
        assert piece.x == 1

    def test_hard_drop_stops_on_floor(self, board, spawned_piece):
        piece = spawned_piece("O")
        hard_drop(board, piece)
        assert piece.y == board.rows - 2

    def test_hard_drop_stops_on_stack(self, board, spawned_piece):
        fill_row(board, 15)
        piece = spawned_piece("O")
        hard_drop(board, piece)
        assert piece.y == 13

    def test_rotate_reverts_on_collision(self, board):
        piece = Piece([[1, 1, 1, 1]], "c", 3, board.rows - 1)
        assert not rotate_piece(board, piece)
        assert piece.shape == [[1, 1, 1, 1]]

    def test_rotate(self, board):
        piece = Piece([[1, 1, 1, 1]], "c", 3, 0)
        assert rotate_piece(board, piece)
        assert piece.shape == [[1], [1], [1], [1]]
