# Overview: Turns uploaded CSV / JSON / Excel files into lists of string-keyed rows.

from __future__ import annotations

import csv
import io
import json
from typing import IO, Any

EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


class UnsupportedFileError(ValueError):
    """Raised for file types the importer cannot read."""


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _read_excel(stream: IO[bytes]) -> list[dict[str, Any]]:
    from openpyxl import load_workbook

    wb = load_workbook(stream, data_only=True, read_only=True)
    try:
        sheet = wb.active
        data = list(sheet.values)
    finally:
        wb.close()
    if not data:
        return []

    headers = [str(h).strip() if h is not None else "" for h in data[0]]
    rows = []
    for values in data[1:]:
        if values is None or all(v is None for v in values):
            continue
        rows.append({
            headers[i]: values[i]
            for i in range(min(len(headers), len(values)))
            if headers[i]
        })
    return rows


def read_rows(filename: str, stream: IO[bytes]) -> list[dict[str, Any]]:
    """Parse `stream` according to the extension of `filename`."""
    ext = _extension(filename or "")

    if ext == "csv":
        text = stream.read().decode("utf-8-sig")
        # Cells past the last header land under the None key; drop them.
        return [
            {k: v for k, v in row.items() if k is not None}
            for row in csv.DictReader(io.StringIO(text))
        ]
    if ext == "json":
        rows = json.load(stream)
        if isinstance(rows, dict):
            rows = rows.get("rows", [])
        if not isinstance(rows, list):
            raise UnsupportedFileError("JSON import must be a list of rows or {\"rows\": [...]}")
        return rows
    if ext in EXCEL_EXTENSIONS:
        return _read_excel(stream)

    raise UnsupportedFileError(f"Unsupported file type: .{ext}" if ext else "File has no extension")
