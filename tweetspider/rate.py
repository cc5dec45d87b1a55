"""Passive throughput measurement over a trailing time window."""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)

RETENTION_SECONDS = 60.0
SHORT_WINDOW_SECONDS = 10.0


@dataclass
class WindowTotals:
	calls: int = 0
	records: int = 0


@dataclass
class RateStats:
	last_10s: WindowTotals
	last_60s: WindowTotals


class RateWindowTracker:
	"""Remembers (timestamp, record_count) observations for the last minute.

	Only measures; it never delays or refuses an observation.
	"""

	def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
		self.clock = clock
		self._events: Deque[Tuple[float, int]] = deque()

	def observe(self, record_count: int, now: Optional[float] = None) -> None:
		try:
			now = self.clock() if now is None else now
			self._events.append((now, record_count))
			cutoff = now - RETENTION_SECONDS
			while self._events and self._events[0][0] < cutoff:
				self._events.popleft()
		except Exception as e:
			logger.debug(f"Rate observation of {record_count} dropped: {e!r}")

	def window(self, seconds: float, now: Optional[float] = None) -> WindowTotals:
		try:
			now = self.clock() if now is None else now
			cutoff = now - seconds
			recent = [count for ts, count in self._events if cutoff <= ts <= now]
			return WindowTotals(calls=len(recent), records=sum(recent))
		except Exception as e:
			logger.debug(f"Rate window of {seconds}s unavailable: {e!r}")
			return WindowTotals()

	def stats(self, now: Optional[float] = None) -> RateStats:
		if now is None:
			try:
				now = self.clock()
			except Exception as e:
				logger.debug(f"Rate clock unavailable: {e!r}")
				return RateStats(last_10s=WindowTotals(), last_60s=WindowTotals())
		return RateStats(
			last_10s=self.window(SHORT_WINDOW_SECONDS, now),
			last_60s=self.window(RETENTION_SECONDS, now),
		)
