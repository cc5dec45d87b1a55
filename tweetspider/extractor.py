"""Turn one raw tweet result into a NormalizedRecord."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .matcher import RequestInfo
from .models import (
	MAX_MEDIA_ITEMS,
	MediaInfo,
	NormalizedRecord,
	QuotedTweet,
	RetweetedStatus,
	VideoVariant,
)
from .views import TweetView, UserView, dig, first_present, to_int, unwrap_tweet_result

logger = logging.getLogger(__name__)

STATUS_URL = "https://x.com/{screen_name}/status/{tweet_id}"
TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"
PLAYABLE_CONTENT_TYPE = "video/mp4"
VIDEO_TYPES = ("video", "animated_gif")


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def status_url(screen_name: Optional[str], tweet_id: Optional[str]) -> str:
	return STATUS_URL.format(screen_name=screen_name or "unknown", tweet_id=tweet_id or "unknown")


def parse_twitter_date(value: Optional[str]) -> Optional[datetime]:
	"""Parse ``Wed Oct 05 20:11:47 +0000 2022``. None when absent or malformed."""
	if not value:
		return None
	try:
		return datetime.strptime(value, TWITTER_DATE_FORMAT).astimezone(timezone.utc)
	except (TypeError, ValueError):
		logger.debug(f"Unparseable created_at: {value!r}")
		return None


# --- text ----------------------------------------------------------------------


def resolve_base_text(tweet: TweetView) -> str:
	"""Own text of a post: note text, then full_text, then the truncated text.

	Never looks at reposted or quoted posts.
	"""
	return first_present(tweet.note_text, tweet.full_text, tweet.short_text) or ""


def resolve_display_text(tweet: TweetView) -> str:
	"""Text shown for a post. A repost shows its original, prefixed with the marker."""
	original = tweet.retweeted
	if original is not None:
		original_text = resolve_base_text(original)
		if original_text:
			return f"RT @{original.author_screen_name or ''}: {original_text}".strip()
	return resolve_base_text(tweet)


# --- media ---------------------------------------------------------------------


def select_playback_variant(variants: List[VideoVariant]) -> Optional[VideoVariant]:
	"""Middle-bitrate mp4, or the only mp4 there is."""
	playable = [v for v in variants if v.content_type == PLAYABLE_CONTENT_TYPE]
	if not playable:
		return None
	playable.sort(key=lambda v: v.bitrate or 0)
	if len(playable) == 1:
		return playable[0]
	return playable[len(playable) // 2]


def extract_media_item(item: dict) -> MediaInfo:
	image_url = first_present(item.get("media_url_https"), item.get("media_url")) or ""
	media = MediaInfo(
		id=item.get("id_str") or "",
		type=item.get("type") or "unknown",
		preview_url=image_url,
		media_url=image_url,
		width=to_int(first_present(dig(item, "original_info", "width"), dig(item, "sizes", "large", "w"))),
		height=to_int(first_present(dig(item, "original_info", "height"), dig(item, "sizes", "large", "h"))),
	)

	if media.type in VIDEO_TYPES:
		duration = dig(item, "video_info", "duration_millis")
		if duration:
			media.duration_ms = to_int(duration)

		raw_variants = dig(item, "video_info", "variants")
		if isinstance(raw_variants, list):
			media.variants = [
				VideoVariant(
					bitrate=to_int(v.get("bitrate")),
					url=v.get("url") or "",
					content_type=v.get("content_type") or "",
				)
				for v in raw_variants
				if isinstance(v, dict)
			]
			chosen = select_playback_variant(media.variants)
			if chosen is not None:
				media.media_url = chosen.url

	return media


def extract_media_info(tweet: TweetView) -> List[MediaInfo]:
	# the platform UI shows at most four; anything past that is dropped
	items = [i for i in tweet.media_items()[:MAX_MEDIA_ITEMS] if isinstance(i, dict)]
	return [extract_media_item(item) for item in items]


# --- extractor -------------------------------------------------------------------


class RecordExtractor:
	"""Builds NormalizedRecords from tweet result nodes.

	Holds no state besides the clock stamped into ``captured_at``; one instance
	can serve every response of every session.
	"""

	def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
		self.clock = clock or utcnow

	def extract(self, node, source_category: str, request_info: Optional[RequestInfo] = None) -> Optional[NormalizedRecord]:
		"""Return a record for ``node`` or None when it is not a usable post.

		Any failure inside a single node is logged and reported as None so the
		caller can carry on with sibling entries.
		"""
		try:
			tweet_node = unwrap_tweet_result(node)
			if tweet_node is None:
				return None
			return self._build(TweetView(tweet_node), source_category, request_info or RequestInfo())
		except Exception as e:
			logger.warning(f"Skipping tweet result while extracting: {e!r}")
			return None

	def _build(self, tweet: TweetView, source_category: str, request_info: RequestInfo) -> Optional[NormalizedRecord]:
		if not isinstance(tweet.legacy, dict):
			logger.debug(f"Missing legacy block on tweet {tweet.rest_id}")
			return None

		user = tweet.user
		if user is None:
			logger.debug(f"Missing core.user_results.result on tweet {tweet.rest_id}")
			return None

		tweet_id = tweet.rest_id
		if not tweet_id:
			logger.debug("Tweet result without an id")
			return None

		full_text = resolve_display_text(tweet)
		if not full_text:
			logger.debug(f"No text content found in tweet {tweet_id}")
			return None

		captured_at = self.clock()
		screen_name = user.screen_name or ""
		original = tweet.retweeted
		# wrapper counters on a repost are zero or stale; the original's are real
		metrics_source = original if original is not None and isinstance(original.legacy, dict) else tweet
		views = first_present(original.view_count if original is not None else None, tweet.view_count)
		media_info = extract_media_info(tweet)

		return NormalizedRecord(
			id=tweet_id,
			conversation_id=tweet.get("conversation_id_str") or "",
			created_at=parse_twitter_date(tweet.created_at) or captured_at,
			full_text=full_text,
			language=tweet.get("lang") or "en",
			source_url=status_url(screen_name, tweet_id),
			author_id=first_present(user.rest_id, screen_name) or "",
			author_screen_name=screen_name,
			author_name=user.name or "",
			author_verified=user.verified,
			author_followers_count=user.followers_count,
			author_profile_image_url=user.avatar_url,
			like_count=metrics_source.metric("favorite_count"),
			retweet_count=metrics_source.metric("retweet_count"),
			reply_count=metrics_source.metric("reply_count"),
			quote_count=metrics_source.metric("quote_count"),
			bookmark_count=metrics_source.metric("bookmark_count"),
			view_count=to_int(views),
			is_quote_status=bool(tweet.get("is_quote_status")),
			possibly_sensitive=bool(tweet.get("possibly_sensitive")),
			in_reply_to_status_id=tweet.get("in_reply_to_status_id_str"),
			in_reply_to_user_id=tweet.get("in_reply_to_user_id_str"),
			in_reply_to_screen_name=tweet.get("in_reply_to_screen_name"),
			has_media=bool(media_info),
			media_info=media_info,
			source_category=source_category,
			source_user_id=request_info.user_id,
			source_query=request_info.query,
			captured_at=captured_at,
			api_request_info=request_info.to_dict(),
			quoted_tweet=self._quoted_tweet(tweet),
			retweeted_status=self._retweeted_status(original),
		)

	def _quoted_tweet(self, tweet: TweetView) -> Optional[QuotedTweet]:
		# a deleted or withheld quote leaves quoted_tweet empty
		quoted = tweet.quoted
		if quoted is None or not quoted.rest_id:
			return None
		try:
			user = quoted.user or UserView({})
			media_info = extract_media_info(quoted)
			return QuotedTweet(
				id=quoted.rest_id,
				text=resolve_base_text(quoted),
				author_name=user.name,
				author_screen_name=user.screen_name,
				author_profile_image_url=user.avatar_url,
				created_at=parse_twitter_date(quoted.created_at),
				tweet_url=status_url(user.screen_name, quoted.rest_id) if user.screen_name else None,
				like_count=quoted.metric("favorite_count"),
				retweet_count=quoted.metric("retweet_count"),
				reply_count=quoted.metric("reply_count"),
				quote_count=quoted.metric("quote_count"),
				has_media=bool(media_info),
				media_info=media_info,
			)
		except Exception as e:
			logger.warning(f"Dropping quoted tweet of {tweet.rest_id}: {e!r}")
			return None

	@staticmethod
	def _retweeted_status(original: Optional[TweetView]) -> Optional[RetweetedStatus]:
		if original is None or not original.rest_id:
			return None
		user = original.user or UserView({})
		return RetweetedStatus(
			id=original.rest_id,
			text=resolve_base_text(original),
			author_name=user.name,
			author_screen_name=user.screen_name,
			created_at=parse_twitter_date(original.created_at),
		)
