"""Canonical rectangular cell grid shared by the grid builder and the reconciler."""

from __future__ import annotations

from collections import Counter
from typing import Iterator, List, Tuple

from ..core.models import CellState, GridCell

Cell = Tuple[int, int]


class CanonicalGrid:
    """
    Rectangular ``rows x cols`` matrix of GridCell.

    Every row has the same length; cells start out non-applicable.
    """

    def __init__(self, rows: int, cols: int):
        if rows <= 0 or cols <= 0:
            rows, cols = 0, 0
        self.rows = rows
        self.cols = cols
        self._cells: List[List[GridCell]] = [
            [GridCell() for _ in range(cols)] for _ in range(rows)
        ]

    @classmethod
    def empty(cls) -> "CanonicalGrid":
        return cls(0, 0)

    def __getitem__(self, cell: Cell) -> GridCell:
        row, col = cell
        return self._cells[row][col]

    def __setitem__(self, cell: Cell, value: GridCell) -> None:
        row, col = cell
        self._cells[row][col] = value

    def __contains__(self, cell: Cell) -> bool:
        row, col = cell
        return 0 <= row < self.rows and 0 <= col < self.cols

    def __iter__(self) -> Iterator[Tuple[Cell, GridCell]]:
        for r, row in enumerate(self._cells):
            for c, value in enumerate(row):
                yield (r, c), value

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def state_counts(self) -> Counter:
        return Counter(value.state for _, value in self)

    def count(self, state: CellState) -> int:
        return sum(1 for _, value in self if value.state == state)

    def row_is_empty(self, row: int) -> bool:
        return all(value.state == CellState.NON_APPLICABLE for value in self._cells[row])

    def to_payload(self, drop_empty_rows: bool = False) -> List[List[bool | str]]:
        """
        Encode for the structural service.

        Args:
            drop_empty_rows: Skip rows where every cell is non-applicable
        """
        return [
            [value.payload_value() for value in row]
            for r, row in enumerate(self._cells)
            if not (drop_empty_rows and self.row_is_empty(r))
        ]
