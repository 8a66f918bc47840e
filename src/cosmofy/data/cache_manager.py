"""
Last-known observer location cache.
Keeps the most recent location on disk and serves it while it is fresh.
"""

import json
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from pathlib import Path

from ..models import Observer

logger = logging.getLogger(__name__)


class LocationCache:
    """Manages caching of the observer's last known location."""

    def __init__(self, cache_dir: str = ".cache", max_age_minutes: float = 30.0):
        """
        Initialize the location cache.

        Args:
            cache_dir: Directory to store the cache file
            max_age_minutes: Freshness window; older entries read as absent
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.location_file = self.cache_dir / "last_location.json"
        self.cache_lock = asyncio.Lock()
        self.max_age = timedelta(minutes=max_age_minutes)

    async def get_location(self, now: Optional[datetime] = None) -> Optional[Observer]:
        """
        Get the cached location if it exists and is still fresh.

        Returns:
            Cached observer or None if missing, stale or unreadable
        """
        async with self.cache_lock:
            entry = self._read_entry()
            if entry is None:
                return None
            saved_at, observer = entry
            if (now or datetime.now(timezone.utc)) - saved_at >= self.max_age:
                logger.info("Cached location is stale")
                return None
            return observer

    async def save_location(self, observer: Observer, now: Optional[datetime] = None):
        """
        Remember a newly acquired location.

        Args:
            observer: Location to cache
        """
        entry = {
            'saved_at': (now or datetime.now(timezone.utc)).isoformat(),
            'observer': observer.to_dict(),
        }
        async with self.cache_lock:
            try:
                with open(self.location_file, 'w') as f:
                    json.dump(entry, f)
                logger.info(f"Cached location {observer.latitude:.2f}, {observer.longitude:.2f}")
            except OSError as e:
                logger.error(f"Error updating location cache: {str(e)}")

    async def clear(self):
        """Forget the cached location."""
        async with self.cache_lock:
            if self.location_file.exists():
                self.location_file.unlink()
                logger.info("Location cache cleared")

    def get_cache_info(self, now: Optional[datetime] = None) -> Dict:
        """
        Get information about the current cache state.

        Returns:
            Dictionary with status ("no_cache", "valid" or "expired") and save time
        """
        entry = self._read_entry()
        if entry is None:
            return {'status': 'no_cache', 'saved_at': None}
        saved_at, _ = entry
        is_valid = (now or datetime.now(timezone.utc)) - saved_at < self.max_age
        return {
            'status': 'valid' if is_valid else 'expired',
            'saved_at': saved_at.isoformat(),
        }

    def _read_entry(self):
        if not self.location_file.exists():
            return None
        try:
            with open(self.location_file, 'r') as f:
                entry = json.load(f)
            saved_at = datetime.fromisoformat(entry['saved_at'])
            raw = entry['observer']
            observer = Observer(
                latitude=float(raw['latitude']),
                longitude=float(raw['longitude']),
                altitude=float(raw.get('altitude') or 0.0),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            # out-of-range coordinates raise InputValidationError, a ValueError
            logger.warning(f"Error reading location cache: {str(e)}")
            return None
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        return saved_at, observer
