"""Configuration loader for GSC Analyzer."""

from dataclasses import dataclass
from decouple import config


@dataclass
class GSCConfig:
    """Search Console API configuration."""
    site_url: str
    credentials_path: str
    row_limit: int = 25000
    country_filter: str = ""


@dataclass
class SheetsConfig:
    """Google Sheets configuration."""
    spreadsheet_id: str
    credentials_path: str
    raw_data_tab: str = "Raw Data"
    ranking_tab: str = "Weekly Ranking"
    url_average_tab: str = "URL Avg Position"
    metric_tab_prefix: str = "Top "


@dataclass
class AnalysisSettings:
    """Analysis parameters."""
    # 0=Sunday .. 6=Saturday
    week_start_day: int = 1

    # Position assumed for rows that did not exist the week before
    new_trend_baseline_position: float = 100.0

    # Restrict the URL average matrix to one country (empty = all)
    url_average_country: str = ""

    write_metric_views: bool = True
    summary_top_n: int = 10
    strict_invariants: bool = False


@dataclass
class AppConfig:
    """Application configuration."""
    gsc: GSCConfig
    sheets: SheetsConfig
    analysis: AnalysisSettings


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    credentials_path = config(
        "GOOGLE_CREDENTIALS_PATH",
        default="google-credentials.json"
    )
    return AppConfig(
        gsc=GSCConfig(
            site_url=config("GSC_SITE_URL", default=""),
            credentials_path=config(
                "GSC_CREDENTIALS_PATH", default=credentials_path
            ),
            row_limit=config("GSC_ROW_LIMIT", default=25000, cast=int),
            country_filter=config("GSC_COUNTRY_FILTER", default=""),
        ),
        sheets=SheetsConfig(
            spreadsheet_id=config("SPREADSHEET_ID"),
            credentials_path=credentials_path,
            raw_data_tab=config("RAW_DATA_TAB", default="Raw Data"),
            ranking_tab=config("RANKING_TAB", default="Weekly Ranking"),
            url_average_tab=config("URL_AVERAGE_TAB", default="URL Avg Position"),
            metric_tab_prefix=config("METRIC_TAB_PREFIX", default="Top "),
        ),
        analysis=AnalysisSettings(
            week_start_day=config("WEEK_START_DAY", default=1, cast=int),
            new_trend_baseline_position=config(
                "NEW_TREND_BASELINE_POSITION", default=100.0, cast=float
            ),
            url_average_country=config("URL_AVERAGE_COUNTRY", default=""),
            write_metric_views=config(
                "WRITE_METRIC_VIEWS", default=True, cast=bool
            ),
            summary_top_n=config("SUMMARY_TOP_N", default=10, cast=int),
            strict_invariants=config(
                "STRICT_INVARIANTS", default=False, cast=bool
            ),
        ),
    )
