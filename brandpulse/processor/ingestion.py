"""Data ingestion module for Brand Pulse.

Reads the daily spreadsheet feed and turns cell text into canonical values:
- Locale value parsers (decimal-comma numbers, day-month-year dates)
- CSV text with semicolon/comma delimiter detection and quoted fields
- CSV files (UTF-8, UTF-8 with BOM, UTF-16 LE with BOM)
- Excel workbook exports with Daily_Input / Targets / Events tabs

Everything here returns string-keyed, string-valued records; typing and
derivation happen in the transform module.
"""

import io
import math
import re
from datetime import date, datetime, timedelta
from pathlib import Path

import pandas as pd


DAILY_SHEET = "Daily_Input"
TARGETS_SHEET = "Targets"
EVENTS_SHEET = "Events"
WORKBOOK_SHEETS = [DAILY_SHEET, TARGETS_SHEET, EVENTS_SHEET]


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

def parse_decimal(value) -> float:
    """Parse a decimal-comma number, defaulting to 0 on anything unusable.

    Periods are thousands separators and the comma is the decimal mark.

    Examples:
        "1.633,50" -> 1633.5
        "14,85"    -> 14.85
        "1.500"    -> 1500.0
        ""         -> 0.0
        None       -> 0.0
        "n/a"      -> 0.0
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else 0.0
    s = str(value).strip().replace("\u00a0", "").replace(" ", "").replace("\u20ac", "")
    if not s:
        return 0.0
    s = s.replace(".", "").replace(",", ".")
    try:
        f = float(s)
    except ValueError:
        return 0.0
    return f if math.isfinite(f) else 0.0


def _strict_dmy(s: str) -> date | None:
    try:
        return datetime.strptime(s, "%d-%m-%Y").date()
    except ValueError:
        return None


def parse_local_date(value) -> date | None:
    """Parse a day-month-year date into a calendar day.

    Tried in order:
        1. strict ``d-m-yyyy`` ("4-2-2026")
        2. the same after turning ``.`` and ``/`` into ``-`` ("04.02.2026")
        3. ISO ``yyyy-mm-dd``, ignoring any time part

    Returns a plain ``date`` (no time zone), or None when every attempt
    fails. None means unparsable, not missing.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None

    parsed = _strict_dmy(s)
    if parsed is not None:
        return parsed

    normalized = re.sub(r"[./]", "-", s)
    if normalized != s:
        parsed = _strict_dmy(normalized)
        if parsed is not None:
            return parsed

    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


_LOOSE_DMY = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")


def parse_event_date(value) -> date | None:
    """Parse an event date, accepting out-of-range day-month-year tokens.

    Event rows are typed in by hand, so after the regular attempts a plain
    ``d-m-yyyy`` token is accepted without range checks and rolled over the
    way a calendar would ("31-4-2026" -> 1 May 2026, "0-3-2026" -> 28 Feb).
    """
    parsed = parse_local_date(value)
    if parsed is not None:
        return parsed
    if value is None:
        return None
    match = _LOOSE_DMY.match(str(value).strip())
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    months = month - 1
    first = date(year + months // 12, months % 12 + 1, 1)
    try:
        return first + timedelta(days=day - 1)
    except OverflowError:
        return None


# ---------------------------------------------------------------------------
# Column cleaning
# ---------------------------------------------------------------------------

def clean_columns(df):
    """Strip whitespace and stray quotes from column names."""
    df.columns = [c.strip().strip('"').strip() if isinstance(c, str) else c
                  for c in df.columns]
    return df


def _cell_text(value) -> str:
    """Render a native spreadsheet cell the way the CSV export spells it."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, (datetime, date)):
        return f"{value.day}-{value.month}-{value.year}"
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value == int(value):
            return str(int(value))
        return repr(value).replace(".", ",")
    return str(value).strip()


def _to_records(df) -> list[dict[str, str]]:
    df = clean_columns(df).fillna("")
    records = df.to_dict(orient="records")
    return [
        {str(k): _cell_text(v) for k, v in row.items()}
        for row in records
    ]


# ---------------------------------------------------------------------------
# CSV text and files
# ---------------------------------------------------------------------------

def detect_delimiter(header_line: str) -> str:
    """Semicolon when the header line contains one, else comma."""
    return ";" if ";" in header_line else ","


def _drop_overlong(width: int):
    """Bad-line handler: trim empty trailing fields, drop rows with more data."""
    def handle(fields: list[str]) -> list[str] | None:
        if any(f.strip() for f in fields[width:]):
            return None
        return fields[:width]
    return handle


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Parse CSV text into string-valued records keyed by header.

    Double-quoted fields may contain the delimiter. Blank lines are skipped,
    short rows are padded with empty strings, trailing empty fields (a
    delimiter at the end of every line) are ignored, and rows with more
    values than the header are dropped.
    """
    text = text.lstrip("\ufeff").strip()
    lines = text.splitlines()
    if len(lines) < 2:
        return []
    options = dict(
        sep=detect_delimiter(lines[0]),
        header=None,
        dtype=object,
        keep_default_na=False,
        skip_blank_lines=True,
        quotechar='"',
        engine="python",
    )
    # The header line is read as a data row so pandas never promotes the
    # first column of a wider first row to an index.
    width = pd.read_csv(io.StringIO(lines[0]), **options).shape[1]
    raw = pd.read_csv(io.StringIO(text), on_bad_lines=_drop_overlong(width),
                      **options)
    df = raw.iloc[1:].reset_index(drop=True)
    df.columns = [str(c) for c in raw.iloc[0]]
    return _to_records(df)


def detect_encoding(path):
    """Detect the text encoding of a CSV export from its byte-order mark."""
    with open(path, "rb") as f:
        raw = f.read(4)
    if raw[:2] == b"\xff\xfe":
        return "utf-16"
    if raw[:3] == b"\xef\xbb\xbf":
        return "utf-8-sig"
    return "utf-8"


def read_csv_file(path) -> list[dict[str, str]]:
    """Read a CSV export with encoding and delimiter detection."""
    path = Path(path)
    text = path.read_text(encoding=detect_encoding(path))
    return parse_csv_text(text)


# ---------------------------------------------------------------------------
# Workbook exports
# ---------------------------------------------------------------------------

def ingest_workbook(path) -> dict[str, list[dict[str, str]]]:
    """Ingest an .xlsx export of the dashboard sheet.

    Returns a dict of record lists keyed by tab name. Only the known tabs
    (Daily_Input, Targets, Events) are read; absent tabs are simply missing
    from the result so the caller can decide whether that matters.
    """
    path = Path(path)
    result = {}
    with pd.ExcelFile(path, engine="openpyxl") as xl:
        available = xl.sheet_names

        # Native cells are rendered back to d-m-yyyy dates and decimal-comma
        # numbers so workbook and CSV rows go through the same parsers.
        for sheet in WORKBOOK_SHEETS:
            if sheet not in available:
                continue
            df = xl.parse(sheet)
            result[sheet] = _to_records(df)

    return result


# ---------------------------------------------------------------------------
# Source type registry
# ---------------------------------------------------------------------------

SOURCE_TYPES = {
    "csv": read_csv_file,
    "workbook": ingest_workbook,
}


def ingest(path, source_type):
    """Ingest a data file by source type.

    Args:
        path: Path to the data file.
        source_type: One of 'csv', 'workbook'.

    Returns:
        List of records (csv) or dict of record lists keyed by tab (workbook).

    Raises:
        ValueError: If source_type is not recognized.
    """
    if source_type not in SOURCE_TYPES:
        raise ValueError(
            f"Unknown source type '{source_type}'. "
            f"Valid types: {', '.join(sorted(SOURCE_TYPES))}"
        )
    return SOURCE_TYPES[source_type](path)
