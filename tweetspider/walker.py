"""Locate timeline instructions in a response and feed their entries to the extractor."""

import logging
from typing import List, Optional, Tuple

from .extractor import RecordExtractor
from .matcher import RequestInfo
from .models import NormalizedRecord
from .views import dig

logger = logging.getLogger(__name__)

# candidate paths to the instruction list, tried in order
TIMELINE_ROOTS = {
	"bookmarks": (
		("data", "bookmark_timeline_v2", "timeline", "instructions"),
	),
	"userTweets": (
		("data", "user", "result", "timeline", "timeline", "instructions"),
		("data", "user", "result", "timeline_v2", "timeline", "instructions"),
	),
	"searchResults": (
		("data", "search_by_raw_query", "search_timeline", "timeline", "instructions"),
	),
	"homeTimeline": (
		("data", "home", "home_timeline_urt", "instructions"),
	),
	"homeLatestTimeline": (
		("data", "home", "home_timeline_urt", "instructions"),
	),
}

ADD_ENTRIES = "TimelineAddEntries"
PIN_ENTRY = "TimelinePinEntry"
ITEM_ENTRY = "TimelineTimelineItem"
TWEET_ITEM = "TimelineTweet"
CURSOR_CONTENT = "TimelineTimelineCursor"


def find_instructions(data, source_type: str) -> list:
	"""Instruction list for ``source_type``; empty when the response has none."""
	for path in TIMELINE_ROOTS.get(source_type, ()):
		instructions = dig(data, *path)
		if isinstance(instructions, list):
			return instructions
	return []


def tweet_result_of(entry) -> Optional[dict]:
	"""Raw tweet result of a single-post entry, None for cursors, ads, modules."""
	if not isinstance(entry, dict):
		return None
	content = entry.get("content") or {}
	if content.get("entryType") != ITEM_ENTRY:
		return None
	item = dig(content, "itemContent") or dig(content, "item_content")
	if not item or item.get("itemType") != TWEET_ITEM:
		return None
	return dig(item, "tweet_results", "result")


def find_bottom_cursor(data, source_type: str) -> Optional[str]:
	"""Value of the ``Bottom`` cursor entry, used to request the next page."""
	for instruction in find_instructions(data, source_type):
		if not isinstance(instruction, dict) or instruction.get("type") != ADD_ENTRIES:
			continue
		for entry in instruction.get("entries") or []:
			content = dig(entry, "content") or {}
			if content.get("__typename") == CURSOR_CONTENT and content.get("cursorType") == "Bottom":
				return content.get("value")
		return None
	return None


class TimelineWalker:
	"""Walks add-entries and pin-entry instructions, in response order."""

	def __init__(self, extractor: Optional[RecordExtractor] = None) -> None:
		self.extractor = extractor or RecordExtractor()

	def walk(self, data, source_type: str, request_info: Optional[RequestInfo] = None) -> List[NormalizedRecord]:
		request_info = request_info or RequestInfo()
		instructions = find_instructions(data, source_type)
		if not instructions:
			logger.debug(f"No timeline instructions for {source_type}")
			return []

		records = []
		for instruction in instructions:
			if not isinstance(instruction, dict):
				continue
			kind = instruction.get("type")
			if kind == ADD_ENTRIES:
				for entry in instruction.get("entries") or []:
					record = self._extract_entry(entry, source_type, request_info)
					if record is not None:
						records.append(record)
			elif kind == PIN_ENTRY:
				record = self._extract_entry(instruction.get("entry"), source_type, request_info)
				if record is not None:
					record.is_pinned = True
					records.append(record)
			else:
				logger.debug(f"Skipping instruction type: {kind}")

		logger.debug(f"Extracted {len(records)} tweets from {len(instructions)} {source_type} instructions")
		return records

	def _extract_entry(self, entry, source_type: str, request_info: RequestInfo) -> Optional[NormalizedRecord]:
		try:
			result = tweet_result_of(entry)
			if result is None:
				return None
			return self.extractor.extract(result, source_type, request_info)
		except Exception as e:
			entry_id = entry.get("entryId") if isinstance(entry, dict) else None
			logger.warning(f"Skipping entry {entry_id} while extracting: {e!r}")
			return None


def walk_with_cursor(walker: TimelineWalker, data, source_type: str, request_info: Optional[RequestInfo] = None) -> Tuple[List[NormalizedRecord], Optional[str]]:
	return walker.walk(data, source_type, request_info), find_bottom_cursor(data, source_type)
