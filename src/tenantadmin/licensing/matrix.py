# src/tenantadmin/licensing/matrix.py
"""
License × service comparison matrix.

Both the "which licenses include service X" and the "which services does
license Y include" views are the same pivot with rows and columns swapped.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Tuple

DISPLAY_YES = "✔"
DISPLAY_NO = "✘"
EXPORT_YES = "1"
EXPORT_NO = "0"


@dataclass(frozen=True)
class MembershipRecord:
    """One (license, service) pair: this license includes this service."""
    license_name: str
    service_name: str


class Orientation(Enum):
    # rows = licenses, columns = services matching the term
    LICENSE_ROWS = "license_rows"
    # rows = services, columns = licenses matching the term
    SERVICE_ROWS = "service_rows"

    @property
    def search_field(self) -> str:
        return "service" if self is Orientation.LICENSE_ROWS else "license"

    @property
    def row_header(self) -> str:
        return "License" if self is Orientation.LICENSE_ROWS else "Service"

    def split(self, rec: MembershipRecord) -> Tuple[str, str]:
        """(row, column) for a record in this orientation."""
        if self is Orientation.LICENSE_ROWS:
            return rec.license_name, rec.service_name
        return rec.service_name, rec.license_name


class NoMatch(LookupError):
    """No record's search field matched the term. Nothing to display."""
    def __init__(self, term: str, search_field: str):
        super().__init__(f"No {search_field} name matches '{term}'")
        self.term = term
        self.search_field = search_field


@dataclass(frozen=True)
class ComparisonMatrix:
    orientation: Orientation
    term: str
    row_labels: Tuple[str, ...]
    column_labels: Tuple[str, ...]
    cells: Mapping[Tuple[str, str], bool] = field(repr=False)

    def included(self, row: str, column: str) -> bool:
        return self.cells[(row, column)]

    @property
    def row_header(self) -> str:
        return self.orientation.row_header

    @property
    def header(self) -> List[str]:
        return [self.row_header, *self.column_labels]


@dataclass(frozen=True)
class MatrixRow:
    label: str
    values: Tuple[Tuple[str, str], ...]  # ordered (column label, rendered value)

    def as_list(self) -> List[str]:
        return [self.label, *(v for _, v in self.values)]


def _matcher(term: str, regex: bool) -> Callable[[str], bool]:
    if regex:
        try:
            pattern = re.compile(term, re.IGNORECASE)
        except re.error as ex:
            raise ValueError(f"Invalid search pattern {term!r}: {ex}") from ex
        return lambda value: pattern.search(value) is not None
    needle = term.casefold()
    return lambda value: needle in value.casefold()


def build_matrix(
    records: Iterable[MembershipRecord],
    term: str,
    orientation: Orientation,
    *,
    regex: bool = False,
) -> ComparisonMatrix:
    """
    Filter records by `term` (case-insensitive, literal substring unless
    regex=True) against the orientation's search field and pivot the result
    into a dense boolean grid. Raises NoMatch when nothing matches.
    """
    matches = _matcher(term, regex)
    # the search field is always the column field
    pairs = set()
    for rec in records:
        row, column = orientation.split(rec)
        if matches(column):
            pairs.add((row, column))

    if not pairs:
        raise NoMatch(term, orientation.search_field)

    rows = tuple(sorted({r for r, _ in pairs}))
    columns = tuple(sorted({c for _, c in pairs}))
    cells = {(r, c): (r, c) in pairs for r in rows for c in columns}

    return ComparisonMatrix(
        orientation=orientation,
        term=term,
        row_labels=rows,
        column_labels=columns,
        cells=MappingProxyType(cells),
    )


def render_rows(matrix: ComparisonMatrix, true_value: str, false_value: str) -> List[MatrixRow]:
    out: List[MatrixRow] = []
    for r in matrix.row_labels:
        values = tuple(
            (c, true_value if matrix.cells[(r, c)] else false_value)
            for c in matrix.column_labels
        )
        out.append(MatrixRow(label=r, values=values))
    return out


def display_rows(matrix: ComparisonMatrix) -> List[MatrixRow]:
    return render_rows(matrix, DISPLAY_YES, DISPLAY_NO)


def export_rows(matrix: ComparisonMatrix) -> List[MatrixRow]:
    return render_rows(matrix, EXPORT_YES, EXPORT_NO)
