import re

import pytest

from tweetspider.session import CaptureSessionTracker, NoActiveSessionError, new_session_id

from payloads import make_tweet


def _records(extractor, *ids):
    return [extractor.extract(make_tweet(rest_id=i), "bookmarks") for i in ids]


def test_session_id_format():
    assert re.fullmatch(r"session_\d+_[a-z0-9]{9}", new_session_id())


def test_filter_requires_active_session(extractor):
    with pytest.raises(NoActiveSessionError):
        CaptureSessionTracker().filter(_records(extractor, "1"))


def test_new_records_are_stamped(extractor):
    tracker = CaptureSessionTracker()
    session = tracker.start("bookmarks", {"type": "bookmarks"})
    result = tracker.filter(_records(extractor, "1", "2"))

    assert [r.id for r in result.new] == ["1", "2"]
    assert result.duplicates == []
    assert all(r.capture_session_id == session.id for r in result.new)
    assert session.tweet_count == 2


def test_duplicates_within_session(extractor):
    tracker = CaptureSessionTracker()
    tracker.start("bookmarks")
    tracker.filter(_records(extractor, "1", "2"))
    result = tracker.filter(_records(extractor, "2", "3", "3"))

    assert [r.id for r in result.new] == ["3"]
    assert [r.id for r in result.duplicates] == ["2", "3"]
    assert result.duplicates[0].capture_session_id is None
    assert tracker.seen_count == 3


def test_new_session_forgets_seen_ids(extractor):
    tracker = CaptureSessionTracker()
    first = tracker.start("bookmarks")
    tracker.filter(_records(extractor, "1"))
    tracker.stop()

    second = tracker.start("bookmarks")
    result = tracker.filter(_records(extractor, "1"))
    assert second.id != first.id
    assert [r.capture_session_id for r in result.new] == [second.id]


def test_stop_completes_session(extractor):
    tracker = CaptureSessionTracker()
    tracker.start("searchResults")
    tracker.filter(_records(extractor, "1", "2", "3"))
    session = tracker.stop()

    assert session.status == "completed"
    assert session.tweet_count == 3
    assert session.completed_at is not None
    assert tracker.active is False
    assert tracker.stop() is None
