"""Turn raw sheet rows into DailyRecords."""

import logging

from ..exceptions import InputDataError
from ..models import CellContent, DailyRecord
from ..weeks import parse_date
from .cells import cell_text

logger = logging.getLogger(__name__)

DAILY_HEADERS = [
    "Site",
    "Date",
    "Query",
    "Page",
    "Country",
    "Device",
    "Clicks",
    "Impressions",
    "CTR",
    "Position",
]

HEADER_ALIASES = {
    "site": ("site", "property", "site_url"),
    "date": ("date", "day"),
    "query": ("query", "search_query", "top_queries", "keyword"),
    "page": ("page", "page_url", "url", "landing_page"),
    "country": ("country",),
    "device": ("device",),
    "clicks": ("clicks",),
    "impressions": ("impressions",),
    "ctr": ("ctr", "url_ctr"),
    "position": ("position", "average_position", "avg_position"),
}

REQUIRED_FIELDS = ("date", "query", "page")


def normalize_header(header: str) -> str:
    """Case-insensitive header name with spaces replaced by underscores."""
    return str(header).lower().strip().replace(" ", "_").replace(".", "")


def column_map(header_row: list[str]) -> dict[str, int]:
    """Map field names to column positions using HEADER_ALIASES."""
    positions = {normalize_header(h): i for i, h in reversed(list(enumerate(header_row)))}
    columns = {}
    for field, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in positions:
                columns[field] = positions[alias]
                break
    return columns


def _number_text(value: str) -> str:
    return value.strip().replace(",", "").rstrip("%").strip()


def to_int(value: str, field: str) -> int:
    """Parse a non-negative count; blank means 0."""
    text = _number_text(value)
    if not text:
        return 0
    try:
        number = int(float(text))
    except ValueError:
        raise InputDataError(f"Non-numeric {field}: {value!r}") from None
    if number < 0:
        raise InputDataError(f"Negative {field}: {value!r}")
    return number


def to_float(value: str, field: str) -> float:
    """Parse a float metric; blank means 0."""
    text = _number_text(value)
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        raise InputDataError(f"Non-numeric {field}: {value!r}") from None


def parse_daily_row(
    row: list[CellContent],
    columns: dict[str, int],
    default_site: str = "",
) -> DailyRecord:
    """Build a DailyRecord from one resolved row.

    Raises:
        InputDataError: On an invalid date or a non-numeric metric.
    """
    def get(field: str) -> str:
        position = columns.get(field)
        if position is None or position >= len(row):
            return ""
        return cell_text(row[position]).strip()

    return DailyRecord(
        site=get("site") or default_site,
        date=parse_date(get("date")),
        search_query=get("query"),
        page_url=get("page"),
        country=get("country").lower(),
        device=get("device").lower(),
        clicks=to_int(get("clicks"), "clicks"),
        impressions=to_int(get("impressions"), "impressions"),
        ctr=to_float(get("ctr"), "ctr"),
        average_position=to_float(get("position"), "position"),
    )


def read_daily_rows(
    grid: list[list[CellContent]],
    default_site: str = "",
) -> tuple[list[DailyRecord], int]:
    """Parse a resolved sheet (header row first).

    Blank rows are ignored; malformed rows are skipped and counted.

    Returns:
        Tuple of (records, skipped count)
    """
    if not grid:
        return [], 0

    columns = column_map([cell_text(c, prefer_url=False) for c in grid[0]])
    missing = [f for f in REQUIRED_FIELDS if f not in columns]
    if missing:
        raise InputDataError(f"Raw data sheet is missing columns: {', '.join(missing)}")

    records = []
    skipped = 0
    for line, row in enumerate(grid[1:], 2):
        if not any(cell_text(c).strip() for c in row):
            continue
        try:
            records.append(parse_daily_row(row, columns, default_site))
        except InputDataError as e:
            skipped += 1
            logger.debug("Skipping row %d: %s", line, e)

    if skipped:
        logger.warning("Skipped %d malformed rows", skipped)
    return records, skipped
