"""Record shapes produced by the extractor and kept by the store.

Everything here round-trips through plain dicts: ``to_dict`` is both the
stored form and the export form, timestamps as ISO-8601 strings.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional


MAX_MEDIA_ITEMS = 4


def _iso(value: Optional[datetime]) -> Optional[str]:
	return value.isoformat() if value is not None else None


def _parse_iso(value) -> Optional[datetime]:
	if value is None or isinstance(value, datetime):
		return value
	return datetime.fromisoformat(value)


@dataclass
class VideoVariant:
	bitrate: int = 0
	url: str = ""
	content_type: str = ""


@dataclass
class MediaInfo:
	id: str
	type: str
	preview_url: str = ""
	media_url: str = ""
	width: int = 0
	height: int = 0
	duration_ms: Optional[int] = None
	variants: Optional[List[VideoVariant]] = None

	def to_dict(self) -> Dict[str, Any]:
		data = asdict(self)
		# photos carry neither key
		if self.duration_ms is None:
			data.pop("duration_ms")
		if self.variants is None:
			data.pop("variants")
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "MediaInfo":
		variants = data.get("variants")
		return cls(
			id=data.get("id", ""),
			type=data.get("type", "unknown"),
			preview_url=data.get("preview_url", ""),
			media_url=data.get("media_url", ""),
			width=data.get("width", 0),
			height=data.get("height", 0),
			duration_ms=data.get("duration_ms"),
			variants=[VideoVariant(**v) for v in variants] if variants is not None else None,
		)


@dataclass
class QuotedTweet:
	"""Reduced view of a quoted post. Never carries its own quote or repost."""

	id: str
	text: str
	author_name: Optional[str] = None
	author_screen_name: Optional[str] = None
	author_profile_image_url: str = ""
	created_at: Optional[datetime] = None
	tweet_url: Optional[str] = None
	like_count: int = 0
	retweet_count: int = 0
	reply_count: int = 0
	quote_count: int = 0
	has_media: bool = False
	media_info: List[MediaInfo] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		data = {f.name: getattr(self, f.name) for f in fields(self)}
		data["created_at"] = _iso(self.created_at)
		data["media_info"] = [m.to_dict() for m in self.media_info]
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "QuotedTweet":
		data = dict(data)
		data["created_at"] = _parse_iso(data.get("created_at"))
		data["media_info"] = [MediaInfo.from_dict(m) for m in data.get("media_info") or []]
		return cls(**data)


@dataclass
class RetweetedStatus:
	id: str
	text: str
	author_name: Optional[str] = None
	author_screen_name: Optional[str] = None
	created_at: Optional[datetime] = None

	def to_dict(self) -> Dict[str, Any]:
		data = asdict(self)
		data["created_at"] = _iso(self.created_at)
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "RetweetedStatus":
		data = dict(data)
		data["created_at"] = _parse_iso(data.get("created_at"))
		return cls(**data)


@dataclass
class NormalizedRecord:
	"""One captured post, flattened.

	- ``id`` is the platform id and the store's primary key.
	- engagement counters of a repost come from the original post.
	- ``capture_session_id`` stays ``None`` until the session tracker stamps it.
	"""

	id: str
	full_text: str
	created_at: datetime
	captured_at: datetime
	source_category: str
	conversation_id: str = ""
	language: str = "en"
	source_url: str = ""

	author_id: str = ""
	author_screen_name: str = ""
	author_name: str = ""
	author_verified: bool = False
	author_followers_count: int = 0
	author_profile_image_url: str = ""

	like_count: int = 0
	retweet_count: int = 0
	reply_count: int = 0
	quote_count: int = 0
	bookmark_count: int = 0
	view_count: int = 0

	is_quote_status: bool = False
	possibly_sensitive: bool = False
	is_pinned: bool = False

	in_reply_to_status_id: Optional[str] = None
	in_reply_to_user_id: Optional[str] = None
	in_reply_to_screen_name: Optional[str] = None

	has_media: bool = False
	media_info: List[MediaInfo] = field(default_factory=list)

	source_user_id: Optional[str] = None
	source_query: Optional[str] = None
	capture_session_id: Optional[str] = None
	api_request_info: Dict[str, Any] = field(default_factory=dict)

	quoted_tweet: Optional[QuotedTweet] = None
	retweeted_status: Optional[RetweetedStatus] = None

	@property
	def unique_key(self) -> str:
		return f"{self.author_screen_name.lower()}_{self.id}"

	def to_dict(self) -> Dict[str, Any]:
		data = {f.name: getattr(self, f.name) for f in fields(self)}
		data["created_at"] = _iso(self.created_at)
		data["captured_at"] = _iso(self.captured_at)
		data["media_info"] = [m.to_dict() for m in self.media_info]
		data["api_request_info"] = dict(self.api_request_info)
		data["quoted_tweet"] = self.quoted_tweet.to_dict() if self.quoted_tweet else None
		data["retweeted_status"] = self.retweeted_status.to_dict() if self.retweeted_status else None
		data["unique_key"] = self.unique_key
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "NormalizedRecord":
		known = {f.name for f in fields(cls)}
		kwargs = {k: v for k, v in data.items() if k in known}
		kwargs["created_at"] = _parse_iso(data["created_at"])
		kwargs["captured_at"] = _parse_iso(data["captured_at"])
		kwargs["media_info"] = [MediaInfo.from_dict(m) for m in data.get("media_info") or []]
		if data.get("quoted_tweet"):
			kwargs["quoted_tweet"] = QuotedTweet.from_dict(data["quoted_tweet"])
		if data.get("retweeted_status"):
			kwargs["retweeted_status"] = RetweetedStatus.from_dict(data["retweeted_status"])
		return cls(**kwargs)


SESSION_ACTIVE = "active"
SESSION_COMPLETED = "completed"


@dataclass
class CaptureSession:
	id: str
	source_type: str
	created_at: datetime
	context: Dict[str, Any] = field(default_factory=dict)
	tweet_count: int = 0
	status: str = SESSION_ACTIVE
	completed_at: Optional[datetime] = None

	def to_dict(self) -> Dict[str, Any]:
		data = asdict(self)
		data["created_at"] = _iso(self.created_at)
		data["completed_at"] = _iso(self.completed_at)
		return data

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "CaptureSession":
		data = dict(data)
		data["created_at"] = _parse_iso(data["created_at"])
		data["completed_at"] = _parse_iso(data.get("completed_at"))
		return cls(**data)
