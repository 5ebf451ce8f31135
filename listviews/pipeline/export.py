"""Spreadsheet export of the currently filtered view."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from listviews.common.fields import get_field
from listviews.common.formatting import header_label
from listviews.common.fs import ensure_dir, write_csv

Column = tuple[str, str]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return value


def _columns(columns: Sequence[str | Column]) -> list[Column]:
    out: list[Column] = []
    for column in columns:
        if isinstance(column, tuple):
            out.append(column)
        else:
            out.append((header_label(column), column))
    return out


def export_rows(records: Iterable[Any], columns: Sequence[str | Column]) -> list[dict[str, Any]]:
    """Project records onto ordered columns.

    A column is a field path, labelled with ``header_label``, or an explicit
    ``(label, path)`` pair.
    """
    resolved = _columns(columns)
    return [{label: _cell(get_field(record, path)) for label, path in resolved} for record in records]


def _xlsx_path(path: Path) -> Path:
    return path if path.suffix.lower() == ".xlsx" else path.with_suffix(".xlsx")


def _frame(rows: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    headers = list(rows[0].keys()) if rows else []
    return pd.DataFrame(list(rows), columns=headers)


def _fit_columns(worksheet: Any, frame: pd.DataFrame) -> None:
    for idx, header in enumerate(frame.columns, start=1):
        values = [str(header)] + [str(value) for value in frame[header].tolist()]
        width = max(len(value) for value in values) + 2
        worksheet.column_dimensions[worksheet.cell(row=1, column=idx).column_letter].width = width


def write_xlsx_sheets(path: Path, sheets: Mapping[str, Sequence[Mapping[str, Any]]]) -> Path:
    out_path = _xlsx_path(path)
    ensure_dir(out_path.parent)
    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            frame = _frame(rows)
            frame.to_excel(writer, index=False, sheet_name=sheet_name)
            _fit_columns(writer.sheets[sheet_name], frame)
    return out_path


def write_xlsx(path: Path, rows: Sequence[Mapping[str, Any]], *, sheet_name: str = "Sheet1") -> Path:
    return write_xlsx_sheets(path, {sheet_name: rows})


def write_export(path: Path, rows: Sequence[Mapping[str, Any]], *, sheet_name: str = "Sheet1") -> Path:
    if path.suffix.lower() == ".csv":
        headers = list(rows[0].keys()) if rows else []
        write_csv(path, headers, rows)
        return path
    return write_xlsx(path, rows, sheet_name=sheet_name)


def export_filename(prefix: str, day: str) -> str:
    return f"{prefix}-{day}.xlsx"
