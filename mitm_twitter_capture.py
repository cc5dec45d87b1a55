"""
mitmproxy addon that captures tweets from X/Twitter GraphQL timeline responses.

Usage:
  mitmdump -s mitm_twitter_capture.py --set tweetspider_autostart=true

This script will:
 - detect requests whose path looks like /i/api/graphql/<id>/<Operation> for
   Bookmarks, UserTweets, SearchTimeline, HomeTimeline and HomeLatestTimeline
 - while a capture session is active, extract tweets from the responses and
   store the new ones in a SQLite database (`tweetspider_db`)
 - optionally append every intercepted request+response to a JSON-lines file
   (`tweetspider_raw_log`) for later re-processing

Storage is synchronous: each matched response is written to SQLite inside the
response hook, so a slow disk delays the proxied traffic behind it.

Commands: tweetspider.start <source>, tweetspider.stop, tweetspider.export <path>,
tweetspider.stats
"""

import json
import logging
import time
from typing import Optional

import mitmproxy.types
from mitmproxy import command, ctx, http

from tweetspider.matcher import match_endpoint
from tweetspider.pipeline import CapturePipeline
from tweetspider.store import TweetStore

logger = logging.getLogger(__name__)

DB_PATH = "tweetspider.sqlite3"
RAW_LOG = ""
TWITTER_HOSTS = ("x.com", "twitter.com")
METADATA_KEY = "tweetspider_source"


def _safe_decode(b: Optional[bytes]) -> Optional[str]:
	if b is None:
		return None
	try:
		return b.decode("utf-8")
	except UnicodeDecodeError:
		return b.decode("latin-1")


def _is_twitter_host(host: str) -> bool:
	return any(host == h or host.endswith("." + h) for h in TWITTER_HOSTS)


class TwitterCaptureAddon:
	"""Feeds matching GraphQL responses into a CapturePipeline.

	- ``request`` tags flows whose operation is one we extract from.
	- ``response`` hands the tagged flow's body to the pipeline.
	- every hook catches and logs its own failures so proxied traffic is never affected.
	"""

	def __init__(self) -> None:
		self.pipeline: Optional[CapturePipeline] = None

	def load(self, loader) -> None:
		loader.add_option(
			name="tweetspider_db",
			typespec=str,
			default=DB_PATH,
			help="SQLite file captured tweets are stored in.",
		)
		loader.add_option(
			name="tweetspider_raw_log",
			typespec=str,
			default=RAW_LOG,
			help="Append intercepted request/response pairs to this JSON-lines file. Empty disables it.",
		)
		loader.add_option(
			name="tweetspider_autostart",
			typespec=bool,
			default=False,
			help="Start a capture session as soon as the proxy is running.",
		)

	def configure(self, updated) -> None:
		if "tweetspider_db" in updated:
			if self.pipeline is not None:
				self.pipeline.stop_capture()
			self.pipeline = CapturePipeline(TweetStore(ctx.options.tweetspider_db))
			logger.info(f"Storing captured tweets in {ctx.options.tweetspider_db}")

	def running(self) -> None:
		if ctx.options.tweetspider_autostart and self.pipeline is not None and not self.pipeline.capturing:
			self.pipeline.start_capture("auto", {"host": "mitmproxy"})

	def done(self) -> None:
		if self.pipeline is not None:
			self.pipeline.stop_capture()

	@command.command("tweetspider.start")
	def start(self, source_type: str) -> None:
		"""Start a new capture session; previously seen tweet ids are forgotten."""
		session = self.pipeline.start_capture(source_type, {"host": "mitmproxy"})
		logger.info(f"Capture started: {session.id}")

	@command.command("tweetspider.stop")
	def stop(self) -> None:
		session = self.pipeline.stop_capture()
		if session is None:
			logger.info("No capture session to stop")
		else:
			logger.info(f"Capture complete: {session.tweet_count} tweets in {session.id}")

	@command.command("tweetspider.export")
	def export(self, path: mitmproxy.types.Path) -> None:
		count = self.pipeline.export(path)
		logger.info(f"Exported {count} tweets to {path}")

	@command.command("tweetspider.stats")
	def stats(self) -> str:
		rate = self.pipeline.rate_stats()
		store = self.pipeline.store
		return json.dumps({
			"total": store.count(),
			"by_source": store.count_by_category(),
			"capturing": self.pipeline.capturing,
			"session_tweets": self.pipeline.tracker.seen_count,
			"last_10s": {"calls": rate.last_10s.calls, "tweets": rate.last_10s.records},
			"last_60s": {"calls": rate.last_60s.calls, "tweets": rate.last_60s.records},
		})

	def _record_raw(self, data: dict) -> None:
		outfile = ctx.options.tweetspider_raw_log
		if not outfile:
			return
		try:
			with open(outfile, "a", encoding="utf-8") as fh:
				fh.write(json.dumps(data, ensure_ascii=False) + "\n")
		except OSError as e:
			logger.warning(f"Failed to write intercept to {outfile}: {e}")

	def request(self, flow: http.HTTPFlow) -> None:
		try:
			host = flow.request.host or ""
			if not _is_twitter_host(host):
				return
			source_type = match_endpoint(flow.request.path or "")
			if source_type is None:
				return
			logger.debug(f"[{source_type}] request matched --> {flow.request.method} {flow.request.pretty_url}")
			# mark flow so response() will handle it too
			flow.metadata[METADATA_KEY] = source_type
		except Exception as e:
			logger.error(f"Error in TwitterCaptureAddon.request: {e}")

	def response(self, flow: http.HTTPFlow) -> None:
		source_type = flow.metadata.get(METADATA_KEY)
		if not source_type or flow.response is None:
			return
		try:
			url = flow.request.pretty_url
			body = flow.response.get_text(strict=False)

			self._record_raw({
				"ts": time.time(),
				"source_type": source_type,
				"url": url,
				"method": flow.request.method,
				"request_body": _safe_decode(flow.request.raw_content),
				"status_code": flow.response.status_code,
				"body": body,
			})

			if self.pipeline is None or flow.response.status_code != 200:
				return
			result = self.pipeline.process_response(url, body)
			logger.info(f"[{source_type}] response processed --> {result.stored} new tweets")

		except Exception as e:
			logger.error(f"Error in TwitterCaptureAddon.response: {e}")


addons = [TwitterCaptureAddon()]
