"""Google Sheets client for reading daily data and writing weekly history."""

import logging
from datetime import date
from typing import Any

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import ValueInputOption, ValueRenderOption

from ..analyzers.url_position import UrlPositionAnalyzer, normalize_url
from ..config import SheetsConfig
from ..exceptions import InputDataError, SectionWriteError
from ..models import (
    RANKING_HEADERS,
    CellContent,
    DailyRecord,
    GroupKey,
    RankingEntry,
    Section,
    UpsertResult,
    UrlAverageColumn,
    WeeklyAggregate,
    WeeklyKey,
)
from ..timeseries import TimeSeriesUpsertStore
from ..weeks import is_numeric_not_a_week, normalize_for_comparison, week_key_from_label
from .cells import cell_text, cell_value, resolve_grid
from .records import DAILY_HEADERS, read_daily_rows, to_float, to_int

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

URL_HEADER = "URL"


def _row_dict(headers: list[str], row: list[CellContent]) -> dict[str, Any]:
    return {
        h: cell_value(row[i]) if i < len(row) else ""
        for i, h in enumerate(headers)
        if h
    }


def _position_cell(value: int | None) -> Any:
    return "" if value is None else value


def _parse_position(text: str) -> int | None:
    text = text.strip()
    if not text:
        return None
    try:
        return int(round(float(text)))
    except ValueError:
        return None


class SheetsClient:
    """Client for Google Sheets operations.

    Implements both collaborators of the analysis pipeline: a daily-record
    source (the raw data tab) and the weekly history store (ranking
    row-blocks and the URL average-position matrix).
    """

    def __init__(self, config: SheetsConfig):
        self.config = config
        self._client: gspread.Client | None = None
        self._spreadsheet: gspread.Spreadsheet | None = None

    def _get_client(self) -> gspread.Client:
        """Get or create authenticated gspread client."""
        if self._client is None:
            credentials = Credentials.from_service_account_file(
                self.config.credentials_path,
                scopes=SCOPES,
            )
            self._client = gspread.authorize(credentials)
        return self._client

    def _get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get or open the spreadsheet."""
        if self._spreadsheet is None:
            client = self._get_client()
            self._spreadsheet = client.open_by_key(self.config.spreadsheet_id)
        return self._spreadsheet

    def _get_or_create_worksheet(
        self, name: str, rows: int = 1000, cols: int = 20
    ) -> gspread.Worksheet:
        """Get existing worksheet or create new one."""
        spreadsheet = self._get_spreadsheet()
        try:
            return spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            return spreadsheet.add_worksheet(title=name, rows=rows, cols=cols)

    def _find_worksheet(self, name: str) -> gspread.Worksheet | None:
        try:
            return self._get_spreadsheet().worksheet(name)
        except gspread.WorksheetNotFound:
            return None

    def _read_cells(self, worksheet: gspread.Worksheet) -> list[list[CellContent]]:
        """Read a worksheet's values and formulas and resolve every cell."""
        values = worksheet.get_all_values(
            value_render_option=ValueRenderOption.unformatted
        )
        formulas = worksheet.get_all_values(
            value_render_option=ValueRenderOption.formula
        )
        return resolve_grid(values, formulas)

    def _write_grid(
        self,
        worksheet: gspread.Worksheet,
        grid: list[list[Any]],
        old_rows: int,
        old_cols: int,
        week_label: str,
    ) -> None:
        """Overwrite a worksheet with one update call.

        The grid is padded with blanks over the previous extent instead of
        clearing first, so a failed call leaves the previous content intact.
        """
        width = max([len(r) for r in grid] + [old_cols, 1])
        height = max(len(grid), old_rows, 1)
        padded = [list(r) + [""] * (width - len(r)) for r in grid]
        padded += [[""] * width for _ in range(height - len(padded))]

        try:
            if worksheet.row_count < height:
                worksheet.add_rows(height - worksheet.row_count)
            if worksheet.col_count < width:
                worksheet.add_cols(width - worksheet.col_count)
            worksheet.update(range_name="A1", values=padded)
        except gspread.exceptions.APIError as e:
            raise SectionWriteError(worksheet.title, week_label, str(e)) from e

    # Daily records

    def read_daily_records(
        self,
        window: tuple[date, date] | None = None,
        default_site: str = "",
    ) -> tuple[list[DailyRecord], int]:
        """Read daily records from the raw data tab.

        Args:
            window: Optional inclusive (start, end) date filter
            default_site: Site used when the sheet has no Site column

        Returns:
            Tuple of (records, skipped malformed rows)
        """
        worksheet = self._find_worksheet(self.config.raw_data_tab)
        if worksheet is None:
            logger.warning("Raw data tab %r not found", self.config.raw_data_tab)
            return [], 0

        records, skipped = read_daily_rows(self._read_cells(worksheet), default_site)
        if window is not None:
            start, end = window
            records = [r for r in records if start <= r.date <= end]
        return records, skipped

    def append_daily_records(self, records: list[DailyRecord]) -> int:
        """Append daily records to the raw data tab."""
        worksheet = self._get_or_create_worksheet(
            self.config.raw_data_tab, cols=len(DAILY_HEADERS)
        )
        if not worksheet.get_all_values():
            worksheet.update(range_name="A1", values=[DAILY_HEADERS])

        if not records:
            return 0

        rows = []
        for record in records:
            data = record.to_dict()
            rows.append([data.get(h, "") for h in DAILY_HEADERS])
        # RAW keeps queries like "10/6" or "0012" as text; dates are ISO strings.
        worksheet.append_rows(rows, value_input_option=ValueInputOption.raw)
        return len(rows)

    # Ranking history

    def _ranking_sections(self, grid: list[list[CellContent]]) -> list[Section]:
        """Split a ranking sheet into contiguous per-week row-blocks."""
        if not grid:
            return []
        headers = [cell_text(c, prefer_url=False).strip() for c in grid[0]]
        if "Week" not in headers:
            return []

        week_col = headers.index("Week")
        sections: list[Section] = []
        current_norm = None
        for row in grid[1:]:
            week = cell_text(row[week_col]).strip() if week_col < len(row) else ""
            if not week:
                continue
            norm = normalize_for_comparison(week)
            if norm != current_norm:
                sections.append(Section(key=week, payload=[]))
                current_norm = norm
            sections[-1].payload.append(_row_dict(headers, row))
        return sections

    def read_ranking_store(self, tab_name: str) -> TimeSeriesUpsertStore:
        """Load a ranking history tab as a section store.

        Raises:
            MergeConflict: If one week appears in two separate blocks.
        """
        worksheet = self._find_worksheet(tab_name)
        if worksheet is None:
            return TimeSeriesUpsertStore()
        return TimeSeriesUpsertStore.from_sections(
            self._ranking_sections(self._read_cells(worksheet))
        )

    @staticmethod
    def _entry_from_row(row: dict[str, Any], week: WeeklyKey) -> RankingEntry:
        def text(header: str) -> str:
            value = row.get(header, "")
            return "" if value is None else str(value)

        aggregate = WeeklyAggregate(
            week=week_key_from_label(text("Week")) or week,
            group=GroupKey(
                search_query=text("Search Query"),
                page_url=text("Page URL"),
                country=text("Country").lower(),
                device=text("Device").lower(),
            ),
            clicks=to_int(text("Clicks"), "clicks"),
            impressions=to_int(text("Impressions"), "impressions"),
            position=to_float(text("Position"), "position"),
            ctr=to_float(text("CTR"), "ctr"),
            sample_count=0,
        )
        return RankingEntry(
            aggregate=aggregate,
            rank=to_int(text("Rank"), "rank"),
            reference_score=None,
            ranking_reason=text("Reason"),
        )

    def read_previous_week(self, tab_name: str, week: WeeklyKey) -> list[RankingEntry]:
        """Ranked rows stored for a week; empty if the tab or week is absent."""
        try:
            store = self.read_ranking_store(tab_name)
        except gspread.exceptions.APIError as e:
            logger.warning("Could not read %s for %s: %s", tab_name, week, e)
            return []

        section = store.get(week)
        if section is None:
            return []

        entries = []
        for row in section.payload:
            try:
                entries.append(self._entry_from_row(row, week))
            except InputDataError as e:
                logger.debug("Skipping history row in %s: %s", tab_name, e)
        return entries

    def upsert_ranking_block(
        self,
        tab_name: str,
        week: WeeklyKey,
        rows: list[dict[str, Any]],
    ) -> UpsertResult | None:
        """Write one week's ranking rows, replacing that week if present.

        Rows are dicts keyed by RANKING_HEADERS (TrendDelta.to_dict()).
        """
        if not rows:
            logger.warning("No ranking rows for %s in %s, nothing written", week, tab_name)
            return None

        worksheet = self._get_or_create_worksheet(
            tab_name, rows=len(rows) + 100, cols=len(RANKING_HEADERS)
        )
        grid = self._read_cells(worksheet)
        store = TimeSeriesUpsertStore.from_sections(self._ranking_sections(grid))

        payload = [{**row, "Week": week.label} for row in rows]
        result = store.upsert(week, payload)

        output = [RANKING_HEADERS]
        for section in store.list_sections():
            for record in section.payload:
                output.append([record.get(h, "") for h in RANKING_HEADERS])

        self._write_grid(
            worksheet,
            output,
            old_rows=len(grid),
            old_cols=max((len(r) for r in grid), default=0),
            week_label=week.label,
        )
        logger.info("%s: %s %s (%d rows)", tab_name, result.action.value, week, len(rows))
        return result

    # URL average-position matrix

    def _url_average_sections(
        self, grid: list[list[CellContent]]
    ) -> tuple[list[str], list[Section]]:
        if not grid:
            return [], []

        header = grid[0]
        rows = grid[1:]
        url_order = []
        row_urls = []
        for row in rows:
            url = normalize_url(cell_text(row[0])) if row else ""
            row_urls.append(url)
            if url and url not in url_order:
                url_order.append(url)

        sections = []
        for col, content in enumerate(header[1:], 1):
            label = cell_text(content, prefer_url=False).strip()
            if not label or is_numeric_not_a_week(label):
                if label:
                    logger.info("Dropping numeric header %r in URL matrix", label)
                continue
            values: dict[str, int | None] = {}
            for url, row in zip(row_urls, rows):
                if not url:
                    continue
                text = cell_text(row[col]) if col < len(row) else ""
                values[url] = _parse_position(text)
            sections.append(Section(key=label, payload=values))
        return url_order, sections

    def read_url_average_store(
        self, tab_name: str
    ) -> tuple[list[str], TimeSeriesUpsertStore]:
        """Load the URL matrix as (URL order, store of week columns)."""
        worksheet = self._find_worksheet(tab_name)
        if worksheet is None:
            return [], TimeSeriesUpsertStore()
        url_order, sections = self._url_average_sections(self._read_cells(worksheet))
        return url_order, TimeSeriesUpsertStore.from_sections(sections)

    def upsert_url_average_column(
        self,
        tab_name: str,
        column: UrlAverageColumn,
    ) -> UpsertResult:
        """Write one week column of the URL matrix, replacing that week if present."""
        worksheet = self._get_or_create_worksheet(tab_name)
        grid = self._read_cells(worksheet)
        url_order, sections = self._url_average_sections(grid)
        store = TimeSeriesUpsertStore.from_sections(sections)

        values = {normalize_url(url): value for url, value in column.values}
        url_order = UrlPositionAnalyzer.merge_url_order(url_order, list(values))
        result = store.upsert(column.week, values)

        columns = store.list_sections()
        output = [[URL_HEADER] + [s.key for s in columns]]
        for url in url_order:
            output.append(
                [url] + [_position_cell(s.payload.get(url)) for s in columns]
            )

        self._write_grid(
            worksheet,
            output,
            old_rows=len(grid),
            old_cols=max((len(r) for r in grid), default=0),
            week_label=column.week.label,
        )
        logger.info("%s: %s %s", tab_name, result.action.value, column.week)
        return result

    def test_connection(self) -> bool:
        """Test connection to Google Sheets."""
        try:
            spreadsheet = self._get_spreadsheet()
            _ = spreadsheet.title
            return True
        except Exception:
            return False
