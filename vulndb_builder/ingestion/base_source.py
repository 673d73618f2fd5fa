"""
Base interface for all vulnerability sources.

A source turns one vendor feed from the local cache into canonical records:
walk the raw files, decode each into an intermediate record, then write every
record in one batch_update transaction. Every source shares this shape and
differs only in parsing and normalization rules.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from storage import Advisory, Operations


@dataclass
class SourceHealth:
    """Health status of a source after its last update."""
    source_id: str
    is_healthy: bool
    last_update: Optional[datetime]
    records_walked: int
    files_skipped: int
    advisories_saved: int
    error_message: Optional[str] = None


class VulnSource(ABC):
    """
    Abstract base class for vulnerability sources.

    All sources must implement update() and get().
    Provides shared health tracking.
    """

    name: str = ""

    def __init__(self, dbc: Operations, logger: Optional[logging.Logger] = None):
        """
        Args:
            dbc: Database the source writes to and reads from
            logger: Logger for informational messages (default: module logger)
        """
        self.dbc = dbc
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self._last_update: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._records_walked = 0
        self._files_skipped = 0
        self._advisories_saved = 0

    @abstractmethod
    def update(self, cache_dir: Path) -> None:
        """
        Rebuild this source's part of the database from the raw feed.

        Args:
            cache_dir: Directory holding vuln-list/<source>/
        """
        pass

    @abstractmethod
    def get(self, version: str, pkg_name: str) -> List[Advisory]:
        """
        Look up advisories for a package on a platform version.

        Returns:
            Matching advisories; an empty list when there are none
        """
        pass

    def get_health(self) -> SourceHealth:
        """Return health status of this source."""
        return SourceHealth(
            source_id=self.name,
            is_healthy=self._last_error is None,
            last_update=self._last_update,
            records_walked=self._records_walked,
            files_skipped=self._files_skipped,
            advisories_saved=self._advisories_saved,
            error_message=self._last_error,
        )
