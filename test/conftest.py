import pytest

from tweetspider.extractor import RecordExtractor
from tweetspider.pipeline import CapturePipeline
from tweetspider.store import TweetStore

from payloads import CAPTURED_AT


@pytest.fixture
def extractor():
    return RecordExtractor(clock=lambda: CAPTURED_AT)


@pytest.fixture
def store(tmp_path):
    return TweetStore(tmp_path / "tweets.sqlite3")


@pytest.fixture
def pipeline(store, extractor):
    return CapturePipeline(store, extractor=extractor)
