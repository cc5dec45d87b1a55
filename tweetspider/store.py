"""SQLite persistence for captured tweets and capture sessions."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from .models import CaptureSession, NormalizedRecord

logger = logging.getLogger(__name__)


CREATE_STATEMENTS: Iterable[str] = (
	"""
	CREATE TABLE IF NOT EXISTS tweets (
		id TEXT PRIMARY KEY,
		source_category TEXT NOT NULL,
		created_at TEXT NOT NULL,
		author_screen_name TEXT,
		capture_session_id TEXT,
		author_id TEXT,
		unique_key TEXT NOT NULL,
		record_json TEXT NOT NULL
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_tweets_source_category ON tweets(source_category)",
	"CREATE INDEX IF NOT EXISTS idx_tweets_created_at ON tweets(created_at)",
	"CREATE INDEX IF NOT EXISTS idx_tweets_author_screen_name ON tweets(author_screen_name)",
	"CREATE INDEX IF NOT EXISTS idx_tweets_capture_session_id ON tweets(capture_session_id)",
	"CREATE INDEX IF NOT EXISTS idx_tweets_author_id ON tweets(author_id)",
	"CREATE UNIQUE INDEX IF NOT EXISTS idx_tweets_unique_key ON tweets(unique_key)",
	"""
	CREATE TABLE IF NOT EXISTS capture_sessions (
		id TEXT PRIMARY KEY,
		source_type TEXT NOT NULL,
		created_at TEXT NOT NULL,
		session_json TEXT NOT NULL
	)
	""",
	"CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON capture_sessions(created_at)",
	"CREATE INDEX IF NOT EXISTS idx_sessions_source_type ON capture_sessions(source_type)",
)


class StoreError(Exception):
	"""A write or read against the database failed; captured data may be lost."""


@dataclass
class StoreResult:
	stored: int = 0
	duplicates: int = 0


class TweetStore:
	"""Append-only tweet store keyed by tweet id.

	Inserting an id (or author/id pair) that is already present is not an
	error: it is counted as a duplicate and the rest of the batch still lands.
	"""

	def __init__(self, path: Union[Path, str]) -> None:
		self.path = Path(path)
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.initialize()

	@contextmanager
	def connect(self) -> Iterator[sqlite3.Connection]:
		try:
			conn = sqlite3.connect(self.path)
		except sqlite3.Error as e:
			raise StoreError(f"Cannot open {self.path}: {e}") from e
		conn.row_factory = sqlite3.Row
		try:
			yield conn
			conn.commit()
		except sqlite3.Error as e:
			conn.rollback()
			raise StoreError(str(e)) from e
		finally:
			conn.close()

	def initialize(self) -> "TweetStore":
		with self.connect() as conn:
			for statement in CREATE_STATEMENTS:
				conn.execute(statement)
		return self

	# Tweets -----------------------------------------------------------

	def put_if_absent(self, records: Sequence[NormalizedRecord]) -> StoreResult:
		result = StoreResult()
		if not records:
			return result
		with self.connect() as conn:
			for record in records:
				data = record.to_dict()
				cursor = conn.execute(
					"""
					INSERT INTO tweets(id, source_category, created_at, author_screen_name,
									   capture_session_id, author_id, unique_key, record_json)
					VALUES(?, ?, ?, ?, ?, ?, ?, ?)
					ON CONFLICT DO NOTHING
					""",
					(
						record.id,
						record.source_category,
						data["created_at"],
						record.author_screen_name,
						record.capture_session_id,
						record.author_id,
						record.unique_key,
						json.dumps(data, ensure_ascii=False),
					),
				)
				if cursor.rowcount == 1:
					result.stored += 1
				else:
					result.duplicates += 1
		logger.info(f"Stored {result.stored} tweets, {result.duplicates} duplicates skipped")
		return result

	def get(self, tweet_id: str) -> Optional[NormalizedRecord]:
		with self.connect() as conn:
			row = conn.execute("SELECT record_json FROM tweets WHERE id = ?", (tweet_id,)).fetchone()
		return _row_to_record(row) if row else None

	def get_by_category(self, category: Optional[str] = None, limit: Optional[int] = 100) -> List[NormalizedRecord]:
		"""Newest first by ``created_at``; every category when ``category`` is None."""
		sql = ["SELECT record_json FROM tweets"]
		params: List[Any] = []
		if category:
			sql.append("WHERE source_category = ?")
			params.append(category)
		sql.append("ORDER BY created_at DESC")
		if limit is not None:
			sql.append("LIMIT ?")
			params.append(int(limit))
		with self.connect() as conn:
			rows = conn.execute("\n".join(sql), params).fetchall()
		return [_row_to_record(row) for row in rows]

	def search(self, term: str, category: Optional[str] = None, limit: int = 1000) -> List[NormalizedRecord]:
		needle = term.lower()
		return [
			record
			for record in self.get_by_category(category, limit)
			if needle in record.full_text.lower()
			or needle in record.author_name.lower()
			or needle in record.author_screen_name.lower()
		]

	def delete(self, tweet_id: str) -> bool:
		with self.connect() as conn:
			cursor = conn.execute("DELETE FROM tweets WHERE id = ?", (tweet_id,))
			return cursor.rowcount > 0

	def clear(self) -> None:
		with self.connect() as conn:
			conn.execute("DELETE FROM tweets")

	def clear_all(self) -> None:
		with self.connect() as conn:
			conn.execute("DELETE FROM tweets")
			conn.execute("DELETE FROM capture_sessions")
		logger.info("All data cleared")

	def count(self) -> int:
		with self.connect() as conn:
			return conn.execute("SELECT COUNT(*) FROM tweets").fetchone()[0]

	def count_by_category(self) -> Dict[str, int]:
		with self.connect() as conn:
			rows = conn.execute(
				"SELECT source_category, COUNT(*) AS n FROM tweets GROUP BY source_category"
			).fetchall()
		return {row["source_category"]: row["n"] for row in rows}

	def unique_author_count(self) -> int:
		with self.connect() as conn:
			return conn.execute("SELECT COUNT(DISTINCT author_screen_name) FROM tweets").fetchone()[0]

	def export_json(self, path: Union[Path, str]) -> int:
		"""Write every record as one pretty-printed JSON array. Returns the record count."""
		with self.connect() as conn:
			rows = conn.execute("SELECT record_json FROM tweets ORDER BY created_at DESC").fetchall()
		records = [json.loads(row["record_json"]) for row in rows]
		with open(path, "w", encoding="utf-8") as fh:
			json.dump(records, fh, indent=2, ensure_ascii=False)
		return len(records)

	# Capture sessions -------------------------------------------------

	def create_session(self, session: CaptureSession) -> str:
		data = session.to_dict()
		with self.connect() as conn:
			conn.execute(
				"INSERT INTO capture_sessions(id, source_type, created_at, session_json) VALUES(?, ?, ?, ?)",
				(session.id, session.source_type, data["created_at"], json.dumps(data, ensure_ascii=False)),
			)
		return session.id

	def get_session(self, session_id: str) -> Optional[CaptureSession]:
		with self.connect() as conn:
			row = conn.execute(
				"SELECT session_json FROM capture_sessions WHERE id = ?", (session_id,)
			).fetchone()
		return CaptureSession.from_dict(json.loads(row["session_json"])) if row else None

	def update_session(self, session_id: str, **changes: Any) -> CaptureSession:
		session = self.get_session(session_id)
		if session is None:
			raise KeyError(f"Session not found: {session_id}")
		for key, value in changes.items():
			if not hasattr(session, key):
				raise AttributeError(f"CaptureSession has no field {key!r}")
			setattr(session, key, value)
		with self.connect() as conn:
			conn.execute(
				"UPDATE capture_sessions SET session_json = ? WHERE id = ?",
				(json.dumps(session.to_dict(), ensure_ascii=False), session_id),
			)
		return session


def _row_to_record(row: sqlite3.Row) -> NormalizedRecord:
	return NormalizedRecord.from_dict(json.loads(row["record_json"]))
