# src/tenantadmin/licensing/export.py
from __future__ import annotations
import csv
import logging
import pathlib
import re

from tenantadmin.licensing.matrix import ComparisonMatrix, Orientation, export_rows

_log = logging.getLogger(__name__)

_EXPORT_PREFIX = {
    Orientation.LICENSE_ROWS: "licenses",
    Orientation.SERVICE_ROWS: "services",
}


def _slug(term: str) -> str:
    s = re.sub(r"[^A-Za-z0-9]+", "-", term).strip("-").lower()
    return s or "all"


def default_export_path(matrix: ComparisonMatrix, export_dir: pathlib.Path) -> pathlib.Path:
    return pathlib.Path(export_dir) / f"{_EXPORT_PREFIX[matrix.orientation]}-{_slug(matrix.term)}.csv"


def write_matrix_csv(matrix: ComparisonMatrix, path: pathlib.Path) -> pathlib.Path:
    """
    Row-label column first, then one 0/1 column per column label. UTF-8.
    """
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        w = csv.writer(fh)
        w.writerow(matrix.header)
        for row in export_rows(matrix):
            w.writerow(row.as_list())
    _log.info("wrote %d x %d matrix to %s", len(matrix.row_labels), len(matrix.column_labels), path)
    return path
