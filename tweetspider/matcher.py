"""Classify intercepted GraphQL URLs and pull request context out of them."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

logger = logging.getLogger(__name__)


def _graphql_operation(name: str) -> "re.Pattern":
	# the operation must be the whole path segment: UserTweets != UserTweetsAndReplies
	return re.compile(r"/i/api/graphql/[^/?#]+/" + re.escape(name) + r"(?=$|[/?#])")


API_PATTERNS = {
	"bookmarks": _graphql_operation("Bookmarks"),
	"userTweets": _graphql_operation("UserTweets"),
	"searchResults": _graphql_operation("SearchTimeline"),
	"homeTimeline": _graphql_operation("HomeTimeline"),
	"homeLatestTimeline": _graphql_operation("HomeLatestTimeline"),
}

DEFAULT_PAGE_SIZE = 20


def match_endpoint(url: Optional[str]) -> Optional[str]:
	"""Return the source type whose operation name appears in ``url``, or None."""
	if not url:
		return None
	for source_type, pattern in API_PATTERNS.items():
		if pattern.search(url):
			return source_type
	return None


@dataclass
class RequestInfo:
	"""Pagination and targeting details decoded from the ``variables`` parameter."""

	count: int = DEFAULT_PAGE_SIZE
	cursor: Optional[str] = None
	user_id: Optional[str] = None
	query: Optional[str] = None
	variables: Dict[str, Any] = field(default_factory=dict)

	def to_dict(self) -> Dict[str, Any]:
		return {
			"count": self.count,
			"cursor": self.cursor,
			"user_id": self.user_id,
			"query": self.query,
		}


def extract_request_info(url: Optional[str]) -> RequestInfo:
	if not url:
		return RequestInfo()
	try:
		params = parse_qs(urlsplit(url).query)
		raw = params.get("variables", ["{}"])[0]
		variables = json.loads(raw)
		if not isinstance(variables, dict):
			raise ValueError(f"variables is a {type(variables).__name__}")
	except ValueError as e:
		logger.debug(f"Unreadable request variables in {url[:100]}: {e}")
		return RequestInfo()

	return RequestInfo(
		count=variables.get("count") or DEFAULT_PAGE_SIZE,
		cursor=variables.get("cursor"),
		user_id=variables.get("userId"),
		# SearchTimeline sends rawQuery; older clients sent query
		query=variables.get("rawQuery") or variables.get("query"),
		variables=variables,
	)
