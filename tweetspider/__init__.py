"""Extraction engine for X/Twitter GraphQL timeline responses."""

from .extractor import RecordExtractor
from .matcher import API_PATTERNS, RequestInfo, extract_request_info, match_endpoint
from .models import CaptureSession, MediaInfo, NormalizedRecord, QuotedTweet, RetweetedStatus
from .pipeline import CapturePipeline, ProcessResult
from .rate import RateWindowTracker
from .session import CaptureSessionTracker, NoActiveSessionError
from .store import StoreError, StoreResult, TweetStore
from .walker import TimelineWalker

__all__ = [
	"API_PATTERNS",
	"CapturePipeline",
	"CaptureSession",
	"CaptureSessionTracker",
	"MediaInfo",
	"NoActiveSessionError",
	"NormalizedRecord",
	"ProcessResult",
	"QuotedTweet",
	"RateWindowTracker",
	"RecordExtractor",
	"RequestInfo",
	"RetweetedStatus",
	"StoreError",
	"StoreResult",
	"TimelineWalker",
	"TweetStore",
	"extract_request_info",
	"match_endpoint",
]
