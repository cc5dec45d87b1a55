"""Capture sessions and the per-session duplicate filter."""

import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import SESSION_ACTIVE, SESSION_COMPLETED, CaptureSession, NormalizedRecord

logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class NoActiveSessionError(RuntimeError):
	pass


def new_session_id() -> str:
	suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=9))
	return f"session_{int(time.time() * 1000)}_{suffix}"


@dataclass
class DedupResult:
	new: List[NormalizedRecord] = field(default_factory=list)
	duplicates: List[NormalizedRecord] = field(default_factory=list)


class CaptureSessionTracker:
	"""Owns the current session and the ids already seen during it.

	- ``start`` opens a session and forgets every id seen before.
	- ``filter`` splits a batch into new and duplicate records and stamps the
	  new ones with the session id.
	- ``stop`` closes the session; the seen set is kept until the next start.
	"""

	def __init__(self) -> None:
		self.session: Optional[CaptureSession] = None
		self._seen: Set[str] = set()

	@property
	def active(self) -> bool:
		return self.session is not None and self.session.status == SESSION_ACTIVE

	@property
	def seen_count(self) -> int:
		return len(self._seen)

	def start(self, source_type: str, context: Optional[Dict[str, Any]] = None) -> CaptureSession:
		if self.active:
			logger.info(f"Replacing active capture session {self.session.id}")
		self._seen.clear()
		self.session = CaptureSession(
			id=new_session_id(),
			source_type=source_type,
			context=dict(context or {}),
			created_at=datetime.now(timezone.utc),
		)
		logger.info(f"Capture session {self.session.id} started for {source_type}")
		return self.session

	def filter(self, records: Iterable[NormalizedRecord]) -> DedupResult:
		if not self.active:
			raise NoActiveSessionError("no capture session is active")

		result = DedupResult()
		for record in records:
			if record.id in self._seen:
				result.duplicates.append(record)
				continue
			self._seen.add(record.id)
			record.capture_session_id = self.session.id
			result.new.append(record)

		self.session.tweet_count = len(self._seen)
		return result

	def stop(self) -> Optional[CaptureSession]:
		if not self.active:
			return None
		session = self.session
		session.status = SESSION_COMPLETED
		session.tweet_count = len(self._seen)
		session.completed_at = datetime.now(timezone.utc)
		logger.info(f"Capture session {session.id} completed with {session.tweet_count} tweets")
		return session
