import csv
import io
from typing import Iterable, Sequence

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _cell(value):
    if value is None:
        return ""
    return value


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence], *, quote_all: bool = False) -> str:
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        lineterminator="\n",
        quoting=csv.QUOTE_ALL if quote_all else csv.QUOTE_MINIMAL,
    )
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def attachment_headers(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


__all__ = ["CSV_MEDIA_TYPE", "attachment_headers", "rows_to_csv"]
