"""services/csv_export.py - CSV rendering shared by reports and log exports."""

import csv
from io import StringIO
from typing import Any, Dict, Iterable, Sequence

from fastapi.responses import Response

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _finish(output: StringIO) -> str:
    # no trailing line break after the last row
    return output.getvalue().rstrip("\n")


def build_csv(rows: Sequence[Dict[str, Any]]) -> str:
    """
    Header row from the first row's keys, one line per row. Strings are
    quoted, numbers bare, missing values written as "". Empty input gives
    an empty document.
    """
    if not rows:
        return ""
    headers = list(rows[0].keys())

    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if row.get(h) is None else row.get(h) for h in headers])
    return _finish(output)


def build_quoted_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Fixed headers, every cell wrapped in double quotes (embedded quotes doubled)."""
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return _finish(output)


def csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
