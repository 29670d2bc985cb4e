"""
Pytest configuration and fixtures for the Slack Q&A agent.

This module provides:
- An in-memory messaging platform with call counters
- Factories for Slack message payloads
- Archive, matcher and settings fixtures wired to the fake platform
"""

from collections import Counter
from typing import Any, Callable, Dict, List, Optional

import pytest
from qa_agent.channels.plugins.slack.client.api import PlatformAPIError
from qa_agent.core.config import Settings
from qa_agent.services.qa.channel_archive import ChannelArchive
from qa_agent.services.qa.models import ChannelMessage, HistoryPage
from qa_agent.services.qa.qa_cache import QACache
from qa_agent.services.qa.qa_matcher import QAMatcher

BOT_USER_ID = "UBOT"


class FakeMessagingPlatform:
    """In-memory ``MessagingPlatform`` recording every call.

    History is stored newest-first per channel ID, like Slack returns it.
    Cursors are stringified offsets into that list.
    """

    def __init__(self) -> None:
        self.channels: List[Dict[str, Any]] = []
        self.history: Dict[str, List[Dict[str, Any]]] = {}
        self.threads: Dict[tuple, List[Dict[str, Any]]] = {}
        self.bot_user_id: Optional[str] = BOT_USER_ID
        self.session_url = "wss://wss-primary.slack.com/link/?ticket=test"
        self.calls: Counter = Counter()
        self.posted: List[tuple] = []
        self.reactions: List[tuple] = []
        self.failures: Dict[str, str] = {}

    def add_channel(self, channel_id: str, name: str) -> None:
        self.channels.append({"id": channel_id, "name": name})
        self.history.setdefault(channel_id, [])

    def add_message(
        self,
        channel_id: str,
        message: Dict[str, Any],
        replies: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.history.setdefault(channel_id, []).insert(0, message)
        thread = [message, *(replies or [])]
        self.threads[(channel_id, message["ts"])] = thread

    def fail(self, method: str, error: str = "internal_error") -> None:
        self.failures[method] = error

    def _record(self, method: str) -> None:
        self.calls[method] += 1
        if method in self.failures:
            raise PlatformAPIError(method, self.failures[method])

    async def open_session(self) -> str:
        self._record("open_session")
        return self.session_url

    async def list_channels(self, limit: int = 1000) -> List[Dict[str, Any]]:
        self._record("list_channels")
        return list(self.channels[:limit])

    async def get_channel_history(
        self, channel_id: str, cursor: Optional[str] = None, limit: int = 200
    ) -> HistoryPage:
        self._record("get_channel_history")
        messages = self.history.get(channel_id, [])
        start = int(cursor) if cursor else 0
        page = messages[start : start + limit]
        next_start = start + limit
        return HistoryPage(
            messages=[ChannelMessage.from_slack(m) for m in page],
            next_cursor=str(next_start) if next_start < len(messages) else None,
        )

    async def get_thread_replies(
        self, channel_id: str, thread_ts: str, limit: Optional[int] = None
    ) -> List[ChannelMessage]:
        self._record("get_thread_replies")
        thread = self.threads.get((channel_id, thread_ts), [])
        if limit is not None:
            thread = thread[:limit]
        return [ChannelMessage.from_slack(m) for m in thread]

    async def post_message(
        self, channel_id: str, text: str, thread_ts: Optional[str] = None
    ) -> Optional[str]:
        self._record("post_message")
        self.posted.append((channel_id, text, thread_ts))
        return f"9999999999.{len(self.posted):06d}"

    async def add_reaction(self, channel_id: str, ts: str, name: str) -> None:
        self._record("add_reaction")
        self.reactions.append(("add", channel_id, ts, name))

    async def remove_reaction(self, channel_id: str, ts: str, name: str) -> None:
        self._record("remove_reaction")
        self.reactions.append(("remove", channel_id, ts, name))

    async def get_current_user_id(self) -> Optional[str]:
        self._record("get_current_user_id")
        return self.bot_user_id

    async def get_channel_info(self, channel_id: str) -> Dict[str, Any]:
        self._record("get_channel_info")
        for channel in self.channels:
            if channel["id"] == channel_id:
                return dict(channel)
        raise PlatformAPIError("get_channel_info", "channel_not_found")


@pytest.fixture
def slack_message() -> Callable[..., Dict[str, Any]]:
    """Factory for Slack message payloads."""

    def _make(text: str, ts: str, user: str = "U001", **extra: Any) -> Dict[str, Any]:
        message = {"type": "message", "text": text, "ts": ts, "user": user}
        message.update(extra)
        return message

    return _make


@pytest.fixture
def platform() -> FakeMessagingPlatform:
    fake = FakeMessagingPlatform()
    fake.add_channel("C001", "dev-help")
    return fake


@pytest.fixture
def deploy_platform(
    platform: FakeMessagingPlatform, slack_message
) -> FakeMessagingPlatform:
    """Channel history with one answered deployment question."""
    platform.add_message(
        "C001",
        slack_message("배포는 어떻게 하나요?", "1700000000.000100", user="U010"),
        replies=[
            slack_message(
                "CI 파이프라인에서 main 브랜치에 머지하면 자동 배포됩니다",
                "1700000100.000200",
                user="U020",
                thread_ts="1700000000.000100",
            )
        ],
    )
    return platform


@pytest.fixture
def archive(platform: FakeMessagingPlatform) -> ChannelArchive:
    return ChannelArchive(
        platform,
        cache=QACache(ttl_seconds=120),
        page_size=200,
        page_delay_seconds=0,
        large_limit=1000,
    )


@pytest.fixture
def matcher(archive: ChannelArchive) -> QAMatcher:
    return QAMatcher(archive, default_threshold=0.3)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        SLACK_BOT_TOKEN="xoxb-test",
        SLACK_APP_TOKEN="xapp-test",
        QA_HISTORY_PAGE_DELAY_SECONDS=0,
    )
