import pytest

from tweetspider.matcher import DEFAULT_PAGE_SIZE, extract_request_info, match_endpoint

from payloads import BOOKMARKS_URL, SEARCH_URL, USER_TWEETS_URL


@pytest.mark.parametrize("url,expected", [
    (SEARCH_URL, "searchResults"),
    (BOOKMARKS_URL, "bookmarks"),
    (USER_TWEETS_URL, "userTweets"),
    ("https://x.com/i/api/graphql/abc/HomeTimeline", "homeTimeline"),
    ("https://x.com/i/api/graphql/abc/HomeLatestTimeline?variables=%7B%7D", "homeLatestTimeline"),
    ("/i/api/graphql/abc/Bookmarks", "bookmarks"),
])
def test_known_operations_match(url, expected):
    assert match_endpoint(url) == expected


@pytest.mark.parametrize("url", [
    "https://x.com/i/api/graphql/abc/UserTweetsAndReplies?variables=%7B%7D",
    "https://x.com/i/api/graphql/abc/BookmarkFolderTimeline",
    "https://x.com/i/api/graphql/abc/TweetDetail?ref=/i/api/graphql/x/SearchTimelineV9",
    "https://x.com/i/api/graphql/abc/ExplorePage",
    "https://x.com/i/api/graphql/abc/searchtimeline",
    "https://x.com/search?q=SearchTimeline",
    "",
    None,
])
def test_unknown_operations_do_not_match(url):
    assert match_endpoint(url) is None


def test_request_info_from_search_url():
    info = extract_request_info(SEARCH_URL)
    assert info.query == "python"
    assert info.count == 20
    assert info.cursor is None
    assert info.user_id is None


def test_request_info_from_user_tweets_url():
    info = extract_request_info(USER_TWEETS_URL)
    assert info.user_id == "44196397"
    assert info.to_dict() == {"count": 20, "cursor": None, "user_id": "44196397", "query": None}


def test_request_info_with_malformed_variables():
    info = extract_request_info("https://x.com/i/api/graphql/abc/Bookmarks?variables=%7Bnot-json")
    assert info.count == DEFAULT_PAGE_SIZE
    assert info.variables == {}


def test_request_info_without_variables():
    info = extract_request_info("https://x.com/i/api/graphql/abc/Bookmarks")
    assert info.cursor is None
    assert info.count == DEFAULT_PAGE_SIZE
