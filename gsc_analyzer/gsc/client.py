"""Search Console Search Analytics client producing daily records."""

import logging
from datetime import date

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import GSCConfig
from ..exceptions import InputDataError
from ..models import DailyRecord
from ..weeks import parse_date

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/webmasters.readonly"]

DIMENSIONS = ["date", "query", "page", "country", "device"]


class GSCClient:
    """Thin wrapper for the Search Analytics API."""

    API_RETRIES = 3

    def __init__(self, config: GSCConfig):
        self.config = config
        self._service = None

    def _build_service(self):
        if self._service is None:
            if not self.config.credentials_path:
                raise RuntimeError("Missing GSC credentials. Set GSC_CREDENTIALS_PATH.")
            credentials = service_account.Credentials.from_service_account_file(
                self.config.credentials_path,
                scopes=SCOPES,
            )
            self._service = build(
                "searchconsole",
                "v1",
                credentials=credentials,
                cache_discovery=False,
            )
        return self._service

    def _country_filter_groups(self) -> list[dict] | None:
        country = self.config.country_filter.strip().lower()
        if not country:
            return None
        return [
            {
                "groupType": "and",
                "filters": [
                    {
                        "dimension": "country",
                        "operator": "equals",
                        "expression": country,
                    }
                ],
            }
        ]

    def _query(self, body: dict) -> dict:
        service = self._build_service()
        try:
            return (
                service.searchanalytics()
                .query(siteUrl=self.config.site_url, body=body)
                .execute(num_retries=self.API_RETRIES)
            )
        except HttpError as exc:
            raise RuntimeError(f"GSC API error: {exc}") from exc

    def _to_record(self, row: dict) -> DailyRecord:
        keys = row.get("keys") or []
        if len(keys) != len(DIMENSIONS):
            raise InputDataError(f"Unexpected keys in row: {keys!r}")
        values = dict(zip(DIMENSIONS, keys))
        try:
            clicks = int(row.get("clicks", 0) or 0)
            impressions = int(row.get("impressions", 0) or 0)
            # API reports ctr as a fraction.
            ctr = float(row.get("ctr", 0.0) or 0.0) * 100
            position = float(row.get("position", 0.0) or 0.0)
        except (TypeError, ValueError) as e:
            raise InputDataError(f"Non-numeric metric in row: {e}") from e

        return DailyRecord(
            site=self.config.site_url,
            date=parse_date(values["date"]),
            search_query=values["query"],
            page_url=values["page"],
            country=values["country"].lower(),
            device=values["device"].lower(),
            clicks=clicks,
            impressions=impressions,
            ctr=ctr,
            average_position=position,
        )

    def fetch_daily_records(
        self,
        start: date,
        end: date,
    ) -> tuple[list[DailyRecord], int]:
        """Fetch every daily row in the inclusive window.

        Returns:
            Tuple of (records, skipped malformed rows)
        """
        records: list[DailyRecord] = []
        skipped = 0
        start_row = 0

        while True:
            body = {
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "dimensions": DIMENSIONS,
                "rowLimit": self.config.row_limit,
                "startRow": start_row,
            }
            filter_groups = self._country_filter_groups()
            if filter_groups:
                body["dimensionFilterGroups"] = filter_groups

            rows = self._query(body).get("rows", [])
            for row in rows:
                try:
                    records.append(self._to_record(row))
                except InputDataError as e:
                    skipped += 1
                    logger.debug("Skipping GSC row: %s", e)

            logger.info("Fetched %d rows from offset %d", len(rows), start_row)
            if len(rows) < self.config.row_limit:
                break
            start_row += len(rows)

        return records, skipped

    def test_connection(self) -> bool:
        """Test the Search Console connection."""
        try:
            self._build_service().sites().get(siteUrl=self.config.site_url).execute()
            return True
        except Exception:
            return False
