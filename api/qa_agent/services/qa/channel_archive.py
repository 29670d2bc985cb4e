"""Mine Q&A entries from a channel's history and reply threads.

The archive is the only writer of the ``QACache``. Every crawl walks the
channel history page by page, mines each top-level question's thread for
its best answer, and records thread replies as searchable entries of their
own. Platform failures never propagate out of the archive: crawls return
what they collected so far and lookups degrade to "not found".
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from qa_agent.channels.plugins.slack.client.api import (
    MessagingPlatform,
    PlatformAPIError,
)
from qa_agent.metrics.qa_metrics import (
    qa_history_crawl_duration_seconds,
    qa_history_entries_crawled,
)
from qa_agent.services.qa.answer_miner import AnswerMiner
from qa_agent.services.qa.models import ChannelMessage, ChannelStats, QAEntry
from qa_agent.services.qa.qa_cache import QACache
from qa_agent.services.qa.text_similarity import similarity

logger = logging.getLogger(__name__)

# Top-level messages must be longer than this to count as questions
MIN_QUESTION_LENGTH = 5
# Similarity needed to re-locate a question during a targeted re-mine
RELOCATE_SIMILARITY = 0.5
UNKNOWN_CHANNEL = "unknown"


class ChannelArchive:
    """Crawl channel history into cached Q&A entries."""

    def __init__(
        self,
        platform: MessagingPlatform,
        cache: Optional[QACache] = None,
        answer_miner: Optional[AnswerMiner] = None,
        page_size: int = 200,
        page_delay_seconds: float = 0.1,
        large_limit: int = 1000,
        channel_list_limit: int = 1000,
    ):
        self.platform = platform
        self.cache = cache or QACache()
        self.answer_miner = answer_miner or AnswerMiner()
        self.page_size = page_size
        self.page_delay_seconds = page_delay_seconds
        self.large_limit = large_limit
        self.channel_list_limit = channel_list_limit
        self._bot_user_id: Optional[str] = None
        self._channel_names: Dict[str, str] = {}

    async def get_bot_user_id(self) -> Optional[str]:
        """Return the bot's own user ID, cached after the first success."""
        if self._bot_user_id is None:
            try:
                self._bot_user_id = await self.platform.get_current_user_id()
                logger.info("Resolved bot user ID: %s", self._bot_user_id)
            except PlatformAPIError as e:
                logger.warning("Failed to resolve bot user ID: %s", e)
        return self._bot_user_id

    async def resolve_channel_id(self, channel_name: str) -> Optional[str]:
        name = channel_name.lstrip("#")
        try:
            channels = await self.platform.list_channels(limit=self.channel_list_limit)
        except PlatformAPIError as e:
            logger.warning("Failed to list channels while resolving %s: %s", name, e)
            return None
        for channel in channels:
            if channel.get("name") == name:
                return channel.get("id")
        return None

    async def resolve_channel_name(self, channel_id: str) -> str:
        """Map a channel ID to its name, ``"unknown"`` when it cannot be read."""
        if channel_id in self._channel_names:
            return self._channel_names[channel_id]
        try:
            info = await self.platform.get_channel_info(channel_id)
        except PlatformAPIError as e:
            logger.warning("Failed to resolve name of channel %s: %s", channel_id, e)
            return UNKNOWN_CHANNEL
        name = info.get("name") or UNKNOWN_CHANNEL
        if name != UNKNOWN_CHANNEL:
            self._channel_names[channel_id] = name
        return name

    async def get_qa_history(self, channel: str, limit: int) -> List[QAEntry]:
        """Return Q&A entries for a channel, crawling on cache miss.

        Args:
            channel: Channel name
            limit: Maximum number of entries to collect

        Returns:
            Mined entries, possibly partial when the platform failed mid-crawl
        """
        cached = self.cache.get(channel, limit)
        if cached is not None:
            return cached

        channel_id = await self.resolve_channel_id(channel)
        if not channel_id:
            logger.warning("Channel %s not found", channel)
            return []

        start = time.perf_counter()
        entries, complete = await self._crawl(channel, channel_id, limit)
        qa_history_crawl_duration_seconds.observe(time.perf_counter() - start)
        qa_history_entries_crawled.inc(len(entries))

        if complete:
            self.cache.set(channel, limit, entries)
        logger.info(
            "Crawled %d Q&A entries from #%s (limit=%d, complete=%s)",
            len(entries),
            channel,
            limit,
            complete,
        )
        return entries

    async def _crawl(
        self, channel: str, channel_id: str, limit: int
    ) -> tuple[List[QAEntry], bool]:
        bot_user_id = await self.get_bot_user_id()
        entries: List[QAEntry] = []
        cursor: Optional[str] = None

        try:
            while len(entries) < limit:
                page = await self.platform.get_channel_history(
                    channel_id, cursor=cursor, limit=self.page_size
                )
                for message in page.messages:
                    if len(entries) >= limit:
                        break
                    if not self._is_candidate(message, bot_user_id):
                        continue
                    entries.extend(
                        await self._mine_message(
                            channel, channel_id, message, bot_user_id
                        )
                    )

                cursor = page.next_cursor
                if not cursor:
                    break
                await asyncio.sleep(self.page_delay_seconds)
        except PlatformAPIError as e:
            logger.warning(
                "History crawl of #%s stopped after %d entries: %s",
                channel,
                len(entries),
                e,
            )
            return entries[:limit], False

        return entries[:limit], True

    @staticmethod
    def _is_candidate(message: ChannelMessage, bot_user_id: Optional[str]) -> bool:
        if not message.text or not message.user or not message.ts:
            return False
        if message.is_from_bot(bot_user_id):
            return False
        return len(message.text) > MIN_QUESTION_LENGTH

    async def _mine_message(
        self,
        channel: str,
        channel_id: str,
        message: ChannelMessage,
        bot_user_id: Optional[str],
    ) -> List[QAEntry]:
        replies = await self._fetch_replies(channel_id, message.ts)
        answer = self.answer_miner.pick_best_answer(
            replies, message.text, bot_user_id=bot_user_id
        )
        mined = [
            QAEntry(
                id=message.ts,
                question=message.text,
                answer=answer,
                channel=channel,
                author=message.user or "",
                timestamp_millis=message.timestamp_millis,
            )
        ]
        for reply in replies:
            if not self._is_candidate(reply, bot_user_id):
                continue
            mined.append(
                QAEntry(
                    id=reply.ts,
                    question=reply.text,
                    channel=channel,
                    author=reply.user or "",
                    timestamp_millis=reply.timestamp_millis,
                    thread_id=message.ts,
                )
            )
        return mined

    async def _fetch_replies(
        self, channel_id: str, thread_ts: str
    ) -> List[ChannelMessage]:
        """Thread replies without the parent message, ``[]`` on failure."""
        try:
            messages = await self.platform.get_thread_replies(channel_id, thread_ts)
        except PlatformAPIError as e:
            logger.debug("Failed to fetch replies for %s: %s", thread_ts, e)
            return []
        return messages[1:]

    def invalidate(self, channel: str) -> int:
        return self.cache.invalidate(channel)

    async def stats(self, channel: str) -> ChannelStats:
        entries = await self.get_qa_history(channel, self.large_limit)
        if not entries:
            return ChannelStats(channel=channel)
        timestamps = [entry.timestamp_millis for entry in entries]
        return ChannelStats(
            channel=channel,
            total_questions=len(entries),
            unique_authors=len({entry.author for entry in entries}),
            oldest_timestamp_millis=min(timestamps),
            newest_timestamp_millis=max(timestamps),
        )

    async def find_thread_answer(
        self, question: str, channel: str, exclude_ts: Optional[str] = None
    ) -> str:
        """Re-locate a question in recent history and re-mine its thread.

        Used when a matched entry carries no usable answer, typically because
        the reply arrived after the entry was cached. The message at
        ``exclude_ts`` (the question being answered) is never re-located.
        """
        channel_id = await self.resolve_channel_id(channel)
        if not channel_id:
            return ""
        try:
            page = await self.platform.get_channel_history(
                channel_id, limit=self.page_size
            )
        except PlatformAPIError as e:
            logger.warning("Targeted re-mine in #%s failed: %s", channel, e)
            return ""

        bot_user_id = await self.get_bot_user_id()
        for message in page.messages:
            if not message.text or message.is_from_bot(bot_user_id):
                continue
            if exclude_ts is not None and message.ts == exclude_ts:
                continue
            if similarity(question, message.text) > RELOCATE_SIMILARITY:
                replies = await self._fetch_replies(channel_id, message.ts)
                return self.answer_miner.pick_best_answer(
                    replies, message.text, bot_user_id=bot_user_id
                )
        return ""
