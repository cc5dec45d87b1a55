"""Typed views over the raw GraphQL tweet/user graph.

The platform moved fields around between schema versions. Each logical field
gets one resolver here that lists its candidate locations in priority order,
so every fallback path is a separate, testable line.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


def dig(obj, *path, default=None):
	"""Safe getter for nested dicts/lists using keys/indices.

	Example: dig(obj, 'core', 'user_results', 'result')
	"""
	cur = obj
	for p in path:
		if cur is None:
			return default
		if isinstance(cur, dict):
			cur = cur.get(p, None)
		elif isinstance(cur, list) and isinstance(p, int) and -len(cur) <= p < len(cur):
			cur = cur[p]
		else:
			return default
	return default if cur is None else cur


def first_present(*candidates):
	"""First candidate that is neither None nor empty."""
	for value in candidates:
		if value is not None and value != "":
			return value
	return None


def to_int(value, default: int = 0) -> int:
	if value is None or isinstance(value, bool):
		return default
	try:
		return int(value)
	except (TypeError, ValueError):
		return default


# --- tweet result variants ---------------------------------------------------


@dataclass
class PlainTweet:
	node: dict


@dataclass
class VisibilityWrappedTweet:
	"""Tweet carrying visibility/moderation metadata; the post itself is in ``.tweet``."""

	node: dict

	@property
	def inner(self) -> Optional[dict]:
		tweet = self.node.get("tweet")
		return tweet if isinstance(tweet, dict) else None


@dataclass
class UnavailableTweet:
	typename: str


@dataclass
class UnknownTweet:
	typename: Optional[str]


TweetResult = Union[PlainTweet, VisibilityWrappedTweet, UnavailableTweet, UnknownTweet]

UNAVAILABLE_TYPENAMES = frozenset({"TweetTombstone", "TweetUnavailable"})


def classify_tweet_result(node) -> TweetResult:
	if not isinstance(node, dict):
		return UnknownTweet(None)
	typename = node.get("__typename")
	if typename == "Tweet":
		return PlainTweet(node)
	if typename == "TweetWithVisibilityResults":
		return VisibilityWrappedTweet(node)
	if typename in UNAVAILABLE_TYPENAMES:
		return UnavailableTweet(typename)
	return UnknownTweet(typename)


def unwrap_tweet_result(node) -> Optional[dict]:
	"""The tweet node behind a result, or None for anything that is not a post."""
	result = classify_tweet_result(node)
	if isinstance(result, PlainTweet):
		return result.node
	if isinstance(result, VisibilityWrappedTweet):
		return result.inner
	if isinstance(result, UnavailableTweet):
		logger.debug(f"Skipping unavailable tweet result ({result.typename})")
	else:
		logger.debug(f"Skipping unknown tweet result type: {result.typename}")
	return None


# --- users -------------------------------------------------------------------


class UserView:
	"""Author fields, newer ``core`` block first, older ``legacy`` block second.

	Each field falls back independently, so one record may mix both blocks.
	"""

	def __init__(self, node: dict) -> None:
		self.node = node
		self.core = dig(node, "core") or {}
		self.legacy = dig(node, "legacy") or {}

	@property
	def rest_id(self) -> Optional[str]:
		return first_present(dig(self.node, "rest_id"), dig(self.legacy, "id_str"))

	@property
	def screen_name(self) -> Optional[str]:
		return first_present(dig(self.core, "screen_name"), dig(self.legacy, "screen_name"))

	@property
	def name(self) -> Optional[str]:
		return first_present(dig(self.core, "name"), dig(self.legacy, "name"))

	@property
	def avatar_url(self) -> str:
		return first_present(
			dig(self.node, "avatar", "image_url"),
			dig(self.legacy, "profile_image_url_https"),
			dig(self.legacy, "profile_image_url"),
		) or ""

	@property
	def verified(self) -> bool:
		return bool(
			dig(self.node, "is_blue_verified")
			or dig(self.node, "verification", "verified")
			or dig(self.legacy, "verified")
		)

	@property
	def followers_count(self) -> int:
		return to_int(dig(self.legacy, "followers_count"))


# --- tweets ------------------------------------------------------------------


class TweetView:
	def __init__(self, node: dict) -> None:
		self.node = node
		self.legacy = dig(node, "legacy")

	@property
	def rest_id(self) -> Optional[str]:
		return first_present(dig(self.node, "rest_id"), dig(self.legacy, "id_str"))

	@property
	def user(self) -> Optional[UserView]:
		user = dig(self.node, "core", "user_results", "result")
		return UserView(user) if isinstance(user, dict) else None

	@property
	def author_screen_name(self) -> Optional[str]:
		user = self.user
		return user.screen_name if user else None

	@property
	def note_text(self) -> Optional[str]:
		return dig(self.node, "note_tweet", "note_tweet_results", "result", "text")

	@property
	def full_text(self) -> Optional[str]:
		return dig(self.legacy, "full_text")

	@property
	def short_text(self) -> Optional[str]:
		return dig(self.legacy, "text")

	@property
	def created_at(self) -> Optional[str]:
		return dig(self.legacy, "created_at")

	@property
	def view_count(self):
		return dig(self.node, "views", "count")

	@property
	def retweeted(self) -> Optional["TweetView"]:
		inner = unwrap_tweet_result(dig(self.legacy, "retweeted_status_result", "result"))
		return TweetView(inner) if inner else None

	@property
	def quoted(self) -> Optional["TweetView"]:
		inner = unwrap_tweet_result(dig(self.node, "quoted_status_result", "result"))
		return TweetView(inner) if inner else None

	def media_items(self) -> list:
		# extended_entities carries every item; entities only the first photo
		media = first_present(
			dig(self.legacy, "extended_entities", "media"),
			dig(self.legacy, "entities", "media"),
		)
		return media if isinstance(media, list) else []

	def metric(self, name: str) -> int:
		return to_int(dig(self.legacy, name))

	def get(self, name: str, default: Any = None) -> Any:
		return dig(self.legacy, name, default=default)
