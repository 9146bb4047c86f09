import random
from configs import GAME_CONFIG, LINE_SCORES

#################################################
# Pieces
#################################################

EMPTY = 0

#shape matrices and colors, in catalog order I, O, T, S, Z, L, J
TETRIS_PIECES = [
    ([[1, 1, 1, 1]], "#00f0f0"),
    ([[1, 1],
      [1, 1]], "#f0f000"),
    ([[0, 1, 0],
      [1, 1, 1]], "#a000f0"),
    ([[0, 1, 1],
      [1, 1, 0]], "#00f000"),
    ([[1, 1, 0],
      [0, 1, 1]], "#f00000"),
    ([[1, 0, 0],
      [1, 1, 1]], "#f0a000"),
    ([[0, 0, 1],
      [1, 1, 1]], "#0000f0"),
]
PIECE_NAMES = ["I", "O", "T", "S", "Z", "L", "J"]


class Piece:
    """A falling tetromino: shape matrix, color and board anchor (x, y)."""

    def __init__(self, shape, color, x=0, y=0):
        self.shape = shape
        self.color = color
        self.x = x
        self.y = y

    @property
    def width(self):
        return len(self.shape[0])

    def cells(self):
        """Yield the (row, col) board position of every filled cell"""
        for row in range(len(self.shape)):
            for col in range(len(self.shape[row])):
                if self.shape[row][col]:
                    yield self.y + row, self.x + col

    def snapshot(self):
        return {
            'shape': [row[:] for row in self.shape],
            'color': self.color,
            'x': self.x,
            'y': self.y,
        }

    def __repr__(self):
        return f"Piece(color={self.color!r}, x={self.x}, y={self.y})"


def random_piece(rng=random):
    """Pick a piece uniformly from the catalog, anchored at (0, 0)"""
    shape, color = rng.choice(TETRIS_PIECES)
    return Piece(shape, color)


def piece_by_name(name):
    shape, color = TETRIS_PIECES[PIECE_NAMES.index(name)]
    return Piece(shape, color)


def rotate_matrix(matrix):
    #rotates clockwise: column j of the old matrix becomes row j, read bottom-up
    rows = len(matrix)
    cols = len(matrix[0])
    rotated = [[0] * rows for _ in range(cols)]
    for i in range(rows):
        for j in range(cols):
            rotated[j][rows - 1 - i] = matrix[i][j]
    return rotated


#################################################
# Board
#################################################

class Board:
    def __init__(self, rows=None, cols=None):
        self.rows = GAME_CONFIG['rows'] if rows is None else rows
        self.cols = GAME_CONFIG['cols'] if cols is None else cols
        if self.rows < 1 or self.cols < 1:
            raise ValueError(f"Board must be at least 1x1, got {self.rows}x{self.cols}")
        self.clear()

    def clear(self):
        #create board with all empty cells
        self.grid = [([EMPTY] * self.cols) for row in range(self.rows)]

    def collides(self, piece):
        """
        Check if the piece is off the board or overlapping placed cells.

        Cells above the visible grid (row < 0) are only checked against the
        side walls.
        """
        for boardRow, boardCol in piece.cells():
            if (boardCol < 0
                    or boardCol >= self.cols
                    or boardRow >= self.rows
                    or (boardRow >= 0 and self.grid[boardRow][boardCol] != EMPTY)):
                return True
        return False

    def lock(self, piece):
        #iterating through each cell in the piece, write its color to the board
        for boardRow, boardCol in piece.cells():
            if boardRow >= 0:
                self.grid[boardRow][boardCol] = piece.color

    def clear_full_rows(self):
        """Remove full rows, push empty rows in at the top, return the count"""
        keptRows = [row for row in self.grid if any(cell == EMPTY for cell in row)]
        cleared = self.rows - len(keptRows)
        if cleared:
            self.grid = [([EMPTY] * self.cols) for _ in range(cleared)] + keptRows
        return cleared

    def is_top_row_occupied(self):
        return any(cell != EMPTY for cell in self.grid[0])

    def column_heights(self):
        heights = [0] * self.cols
        for col in range(self.cols):
            for row in range(self.rows):
                if self.grid[row][col] != EMPTY:
                    heights[col] = self.rows - row
                    break
        return heights

    def occupancy(self):
        """0 for empty, 1 for filled"""
        return [[0 if cell == EMPTY else 1 for cell in row] for row in self.grid]

    def snapshot(self):
        return [row[:] for row in self.grid]


def line_score(lines_cleared):
    return LINE_SCORES[lines_cleared]


#################################################
# Piece movement
#################################################

#creates new falling piece roughly centered at the top of the board
def spawn_piece(board, piece):
    piece.x = board.cols // 2 - piece.width // 2
    piece.y = 0
    return piece

#moves falling piece down, left, or right if it is legal, then returns if the
#move was legal or not
def move_piece(board, piece, dx, dy):
    piece.x += dx
    piece.y += dy
    #if the requested move isn't legal, undo the changes
    if board.collides(piece):
        piece.x -= dx
        piece.y -= dy
        return False
    return True

#rotates falling piece in place, keeping the old shape if the rotation collides
def rotate_piece(board, piece):
    oldShape = piece.shape
    piece.shape = rotate_matrix(oldShape)
    if board.collides(piece):
        piece.shape = oldShape
        return False
    return True

#drops falling piece to the lowest (visually) possible row
def hard_drop(board, piece):
    while not board.collides(piece):
        piece.y += 1
    piece.y -= 1


def apply_action(board, piece, action):
    """Apply one agent action to the falling piece"""
    if action == 'left':
        move_piece(board, piece, -1, 0)
    elif action == 'right':
        move_piece(board, piece, 1, 0)
    elif action == 'rotate':
        rotate_piece(board, piece)
    elif action == 'drop':
        hard_drop(board, piece)
    #'wait' leaves the piece for gravity
