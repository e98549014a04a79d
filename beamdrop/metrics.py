"""
Request and transfer counters for beamdrop
"""

import threading
from typing import Any, Dict

from .models import ServerStats


class StatsManager:
    """Thread-safe stats manager"""

    def __init__(self):
        self.stats = ServerStats()
        self._lock = threading.Lock()

    def increment_requests(self):
        """Increment request counter"""
        with self._lock:
            self.stats.requests += 1

    def increment_downloads(self):
        """Increment download counter"""
        with self._lock:
            self.stats.downloads += 1

    def increment_uploads(self):
        """Increment upload counter"""
        with self._lock:
            self.stats.uploads += 1

    def snapshot(self) -> Dict[str, Any]:
        """Get current stats snapshot"""
        with self._lock:
            return self.stats.to_dict()

    def reset(self):
        """Reset all counters and the start time (for testing)"""
        with self._lock:
            self.stats = ServerStats()
