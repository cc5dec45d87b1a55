"""Response → records → store, for one capture session at a time."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .extractor import RecordExtractor
from .matcher import extract_request_info, match_endpoint
from .models import CaptureSession
from .rate import RateStats, RateWindowTracker
from .session import CaptureSessionTracker
from .store import StoreResult, TweetStore
from .walker import TimelineWalker, walk_with_cursor

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
	source_type: Optional[str] = None
	extracted: int = 0
	new: int = 0
	duplicates: int = 0
	stored: int = 0
	next_cursor: Optional[str] = None

	@property
	def matched(self) -> bool:
		return self.source_type is not None


def parse_body(body: Union[str, bytes, None]) -> Optional[Any]:
	"""Parsed JSON, or None for empty, binary or malformed bodies."""
	if not body:
		return None
	try:
		return json.loads(body)
	except (TypeError, ValueError) as e:
		logger.debug(f"Response body is not JSON: {e}")
		return None


class CapturePipeline:
	"""Wires matcher, walker, session tracker, rate tracker and store together.

	Responses are handled one at a time and to completion. Extraction problems
	never escape ``process_response``; a failing store write does.
	"""

	def __init__(
		self,
		store: TweetStore,
		extractor: Optional[RecordExtractor] = None,
		walker: Optional[TimelineWalker] = None,
		tracker: Optional[CaptureSessionTracker] = None,
		rate: Optional[RateWindowTracker] = None,
	) -> None:
		self.store = store
		self.walker = walker or TimelineWalker(extractor or RecordExtractor())
		self.tracker = tracker or CaptureSessionTracker()
		self.rate = rate or RateWindowTracker()

	@property
	def capturing(self) -> bool:
		return self.tracker.active

	@property
	def session(self) -> Optional[CaptureSession]:
		return self.tracker.session

	def start_capture(self, source_type: str, context: Optional[Dict[str, Any]] = None) -> CaptureSession:
		if self.capturing:
			self.stop_capture()
		session = self.tracker.start(source_type, context)
		self.store.create_session(session)
		return session

	def stop_capture(self) -> Optional[CaptureSession]:
		session = self.tracker.stop()
		if session is not None:
			self.store.update_session(
				session.id,
				status=session.status,
				tweet_count=session.tweet_count,
				completed_at=session.completed_at,
			)
		return session

	def process_response(self, url: str, body: Union[str, bytes, None]) -> ProcessResult:
		source_type = match_endpoint(url)
		result = ProcessResult(source_type=source_type)
		if source_type is None:
			return result
		if not self.capturing:
			logger.debug(f"{source_type} response received while not capturing")
			return result

		data = parse_body(body)
		if data is None:
			return result

		records, result.next_cursor = walk_with_cursor(self.walker, data, source_type, extract_request_info(url))
		result.extracted = len(records)
		self.rate.observe(len(records))
		if not records:
			logger.debug(f"No tweets extracted from {source_type} response")
			return result

		dedup = self.tracker.filter(records)
		result.new = len(dedup.new)
		result.duplicates = len(dedup.duplicates)
		if not dedup.new:
			logger.debug("All tweets were duplicates")
			return result

		stored: StoreResult = self.store.put_if_absent(dedup.new)
		result.stored = stored.stored
		result.duplicates += stored.duplicates
		self.store.update_session(self.session.id, tweet_count=self.session.tweet_count)
		logger.info(
			f"[{source_type}] {result.extracted} extracted, {result.stored} stored, "
			f"{result.duplicates} duplicates"
		)
		return result

	def rate_stats(self) -> RateStats:
		return self.rate.stats()

	def export(self, path) -> int:
		return self.store.export_json(path)
