"""Data models for channel Q&A retrieval."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ChannelMessage:
    """A single message as returned by the messaging platform."""

    ts: str
    text: str = ""
    user: Optional[str] = None
    bot_id: Optional[str] = None
    thread_ts: Optional[str] = None
    subtype: Optional[str] = None

    @classmethod
    def from_slack(cls, data: Dict[str, Any]) -> "ChannelMessage":
        return cls(
            ts=str(data.get("ts") or ""),
            text=data.get("text") or "",
            user=data.get("user"),
            bot_id=data.get("bot_id"),
            thread_ts=data.get("thread_ts"),
            subtype=data.get("subtype"),
        )

    @property
    def timestamp_millis(self) -> int:
        """Slack ts ("1700000000.123456") truncated to whole seconds, in ms."""
        try:
            return int(float(self.ts)) * 1000
        except ValueError:
            return 0

    def is_from_bot(self, bot_user_id: Optional[str]) -> bool:
        if self.bot_id:
            return True
        return bot_user_id is not None and self.user == bot_user_id


@dataclass
class HistoryPage:
    """One page of channel history plus the cursor for the next page."""

    messages: List[ChannelMessage] = field(default_factory=list)
    next_cursor: Optional[str] = None


class QAEntry(BaseModel):
    """A mined question with its best answer.

    Entries with ``thread_id`` set are replies inside another question's
    thread and carry an empty answer.
    """

    id: str
    question: str
    answer: str = ""
    channel: str
    author: str
    timestamp_millis: int
    thread_id: Optional[str] = None


@dataclass(frozen=True)
class QAMatch:
    entry: QAEntry
    similarity: float


class SearchResult(BaseModel):
    found: bool
    original_question: str
    matched_question: Optional[str] = None
    answer: str
    similarity: float = 0.0
    channel: str
    timestamp_millis: int
    author: Optional[str] = None


class ChannelStats(BaseModel):
    channel: str
    total_questions: int = 0
    unique_authors: int = 0
    oldest_timestamp_millis: int = 0
    newest_timestamp_millis: int = 0


class SearchRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=4000)
    channel: str = Field(..., min_length=1, max_length=200)
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class CacheInvalidateRequest(BaseModel):
    channel: str = Field(..., min_length=1, max_length=200)
