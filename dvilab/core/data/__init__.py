"""Data access interfaces."""

from dvilab.core.data.base import DataProvider
from dvilab.core.data.eodhd_provider import EODHDProvider

__all__ = ["DataProvider", "EODHDProvider"]
