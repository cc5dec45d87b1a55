from tweetspider.matcher import RequestInfo
from tweetspider.walker import TimelineWalker, find_bottom_cursor, find_instructions, tweet_result_of

from payloads import (
    add_entries,
    bookmarks_response,
    cursor_entry,
    make_tweet,
    pin_entry,
    search_response,
    tweet_entry,
    user_tweets_response,
)


def test_cursor_valid_and_empty_text_entries_yield_one_record(extractor):
    empty = make_tweet(rest_id="3", text="")
    data = search_response(add_entries(
        cursor_entry(),
        tweet_entry(make_tweet(rest_id="2", text="valid post")),
        tweet_entry(empty),
    ))
    records = TimelineWalker(extractor).walk(data, "searchResults", RequestInfo(query="python"))
    assert [r.id for r in records] == ["2"]
    assert records[0].source_query == "python"


def test_records_keep_entry_order(extractor):
    data = bookmarks_response(add_entries(*[tweet_entry(make_tweet(rest_id=str(i))) for i in (5, 3, 9)]))
    records = TimelineWalker(extractor).walk(data, "bookmarks")
    assert [r.id for r in records] == ["5", "3", "9"]
    assert all(r.source_category == "bookmarks" for r in records)


def test_pinned_entry_is_flagged(extractor):
    data = user_tweets_response(
        {"type": "TimelineClearCache"},
        pin_entry(tweet_entry(make_tweet(rest_id="100", text="pinned"))),
        add_entries(tweet_entry(make_tweet(rest_id="101", text="regular"))),
    )
    records = TimelineWalker(extractor).walk(data, "userTweets")
    assert [(r.id, r.is_pinned) for r in records] == [("100", True), ("101", False)]


def test_user_tweets_timeline_v2_root(extractor):
    data = {"data": {"user": {"result": {"timeline_v2": {"timeline": {"instructions": [
        add_entries(tweet_entry(make_tweet(rest_id="7"))),
    ]}}}}}}
    assert [r.id for r in TimelineWalker(extractor).walk(data, "userTweets")] == ["7"]


def test_home_timeline_root(extractor):
    data = {"data": {"home": {"home_timeline_urt": {"instructions": [
        add_entries(tweet_entry(make_tweet(rest_id="8"))),
    ]}}}}
    assert [r.id for r in TimelineWalker(extractor).walk(data, "homeLatestTimeline")] == ["8"]


def test_missing_root_is_empty(extractor):
    walker = TimelineWalker(extractor)
    assert walker.walk({}, "bookmarks") == []
    assert walker.walk({"data": {}}, "searchResults") == []
    assert walker.walk({"errors": [{"message": "Rate limit exceeded"}]}, "userTweets") == []
    assert walker.walk([], "bookmarks") == []
    assert find_instructions(search_response(), "bookmarks") == []


def test_non_tweet_items_are_skipped():
    promoted_module = {
        "entryId": "who-to-follow-1",
        "content": {"entryType": "TimelineTimelineModule", "items": []},
    }
    user_item = tweet_entry(make_tweet())
    user_item["content"]["itemContent"]["itemType"] = "TimelineUser"
    assert tweet_result_of(promoted_module) is None
    assert tweet_result_of(user_item) is None
    assert tweet_result_of(cursor_entry()) is None
    assert tweet_result_of("garbage") is None


def test_failing_entry_does_not_stop_siblings(extractor, monkeypatch):
    walker = TimelineWalker(extractor)
    real_extract = extractor.extract

    def flaky(node, *args, **kwargs):
        if node.get("rest_id") == "bad":
            raise RuntimeError("boom")
        return real_extract(node, *args, **kwargs)

    monkeypatch.setattr(extractor, "extract", flaky)
    data = bookmarks_response(add_entries(
        tweet_entry(make_tweet(rest_id="1")),
        tweet_entry(make_tweet(rest_id="bad")),
        tweet_entry(make_tweet(rest_id="2")),
    ))
    assert [r.id for r in walker.walk(data, "bookmarks")] == ["1", "2"]


def test_find_bottom_cursor():
    data = bookmarks_response(add_entries(
        tweet_entry(make_tweet()),
        cursor_entry("top-value", "Top"),
        cursor_entry("bottom-value", "Bottom"),
    ))
    assert find_bottom_cursor(data, "bookmarks") == "bottom-value"
    assert find_bottom_cursor(bookmarks_response(add_entries()), "bookmarks") is None
    assert find_bottom_cursor({}, "bookmarks") is None
