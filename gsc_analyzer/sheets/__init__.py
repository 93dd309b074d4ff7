"""Google Sheets storage for daily data and weekly history."""

from .client import SheetsClient

__all__ = ["SheetsClient"]
