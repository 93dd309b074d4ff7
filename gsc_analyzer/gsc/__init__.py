"""Google Search Console API access."""

from .client import GSCClient

__all__ = ["GSCClient"]
