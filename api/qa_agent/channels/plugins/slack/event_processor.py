"""Realtime processing of Slack Socket Mode events.

Frames from the Socket Mode connection are acknowledged immediately and
their inner events queued. A pool of worker tasks drains the queue and:

- answers new questions (question-like channel messages and app mentions),
  showing progress with reactions: seen -> searching -> thinking/question
  -> done/error
- learns from thread replies by invalidating the channel's Q&A cache once
  the thread has settled
"""

import asyncio
import logging
import re
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from qa_agent.channels.plugins.slack.client.api import (
    MessagingPlatform,
    PlatformAPIError,
)
from qa_agent.channels.plugins.slack.config import SlackReactionConfig
from qa_agent.channels.plugins.slack.dedup import ProcessedMessageRegistry
from qa_agent.channels.plugins.slack.reactions import ReactionNotifier
from qa_agent.metrics.qa_metrics import (
    qa_questions_processed,
    qa_thread_answers_learned,
)
from qa_agent.services.qa.channel_archive import ChannelArchive
from qa_agent.services.qa.models import ChannelMessage, SearchResult
from qa_agent.services.qa.qa_matcher import (
    FALLBACK_MESSAGE,
    QAMatcher,
    has_usable_answer,
)
from qa_agent.services.qa.text_similarity import is_question_like

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "죄송해요, 검색 중 오류가 발생했어요 😓 잠시 후 다시 시도해주세요!"

_MENTION = re.compile(r"<@[A-Z0-9]+(?:\|[^>]*)?>")

# Thread replies shorter than this are not worth learning from
MIN_THREAD_ANSWER_LENGTH = 10
THREAD_FETCH_LIMIT = 50

# Message subtypes that still carry a user-authored message
_USER_SUBTYPES = {None, "thread_broadcast"}

Acknowledger = Callable[[Dict[str, Any]], Awaitable[None]]


def strip_mentions(text: str) -> str:
    return _MENTION.sub("", text).strip()


class RealtimeEventProcessor:
    """Turn Socket Mode frames into answers and cache invalidations."""

    def __init__(
        self,
        platform: MessagingPlatform,
        archive: ChannelArchive,
        matcher: QAMatcher,
        acknowledge: Acknowledger,
        registry: Optional[ProcessedMessageRegistry] = None,
        reactions: Optional[SlackReactionConfig] = None,
        similarity_threshold: float = 0.3,
        worker_count: int = 4,
        thread_analysis_delay_seconds: float = 5.0,
    ):
        self.platform = platform
        self.archive = archive
        self.matcher = matcher
        self.acknowledge = acknowledge
        self.registry = registry or ProcessedMessageRegistry()
        self.reactions = reactions or SlackReactionConfig()
        self.notifier = ReactionNotifier(platform)
        self.similarity_threshold = similarity_threshold
        self.worker_count = worker_count
        self.thread_analysis_delay_seconds = thread_analysis_delay_seconds

        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._workers: List[asyncio.Task[None]] = []
        self._background: Set[asyncio.Task[None]] = set()

    @property
    def is_running(self) -> bool:
        return any(not worker.done() for worker in self._workers)

    async def start(self) -> None:
        if self.is_running:
            return
        self._workers = [
            asyncio.create_task(
                self._worker(index), name=f"slack-event-worker-{index}"
            )
            for index in range(self.worker_count)
        ]
        logger.info(
            "Realtime event processor started with %d workers", self.worker_count
        )

    async def stop(self) -> None:
        tasks = [*self._workers, *self._background]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._workers = []
        self._background.clear()
        logger.info("Realtime event processor stopped")

    async def join(self) -> None:
        """Wait until every queued event and pending thread analysis is done."""
        await self._queue.join()
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def handle_frame(self, frame: Dict[str, Any]) -> None:
        """Acknowledge a Socket Mode envelope and queue its event."""
        envelope_id = frame.get("envelope_id")
        if envelope_id:
            try:
                await self.acknowledge({"envelope_id": envelope_id})
            except Exception:
                logger.exception("Failed to acknowledge envelope %s", envelope_id)

        if frame.get("type") != "events_api":
            logger.debug("Ignoring Socket Mode frame of type %s", frame.get("type"))
            return

        event = (frame.get("payload") or {}).get("event")
        if isinstance(event, dict):
            self._queue.put_nowait(event)

    async def _worker(self, index: int) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.process_event(event)
            except Exception:
                logger.exception("Worker %d failed to process event", index)
            finally:
                self._queue.task_done()

    async def process_event(self, event: Dict[str, Any]) -> None:
        event_type = event.get("type")
        if event_type == "message":
            await self.handle_message(event)
        elif event_type == "app_mention":
            await self.handle_app_mention(event)
        else:
            logger.debug("Ignoring event type %s", event_type)

    async def handle_message(self, event: Dict[str, Any]) -> None:
        message = ChannelMessage.from_slack(event)
        channel_id = event.get("channel")
        if not channel_id or not message.ts or message.subtype not in _USER_SUBTYPES:
            return
        if message.is_from_bot(await self.archive.get_bot_user_id()):
            return

        if message.thread_ts and message.thread_ts != message.ts:
            await self.handle_thread_reply(channel_id, message)
        elif is_question_like(message.text):
            question = strip_mentions(message.text)
            if question:
                await self.handle_question(channel_id, message.ts, question)

    async def handle_app_mention(self, event: Dict[str, Any]) -> None:
        channel_id = event.get("channel")
        ts = event.get("ts")
        if not channel_id or not ts:
            return
        if event.get("bot_id"):
            return
        question = strip_mentions(event.get("text") or "")
        if not question:
            logger.debug("Ignoring empty mention in %s", channel_id)
            return
        await self.handle_question(channel_id, ts, question)

    async def handle_thread_reply(self, channel_id: str, reply: ChannelMessage) -> None:
        text = reply.text.strip()
        if is_question_like(text) or len(text) < MIN_THREAD_ANSWER_LENGTH:
            return
        task = asyncio.create_task(
            self._analyze_thread_after_delay(channel_id, reply.thread_ts or reply.ts)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _analyze_thread_after_delay(
        self, channel_id: str, thread_ts: str
    ) -> None:
        if self.thread_analysis_delay_seconds > 0:
            await asyncio.sleep(self.thread_analysis_delay_seconds)
        try:
            await self.analyze_thread(channel_id, thread_ts)
        except Exception:
            logger.exception(
                "Thread analysis failed for %s in %s", thread_ts, channel_id
            )

    async def analyze_thread(self, channel_id: str, thread_ts: str) -> None:
        """Mine the thread and, when it yields an answer, invalidate the cache."""
        bot_user_id = await self.archive.get_bot_user_id()
        try:
            messages = await self.platform.get_thread_replies(
                channel_id, thread_ts, limit=THREAD_FETCH_LIMIT
            )
        except PlatformAPIError as e:
            logger.warning("Failed to fetch thread %s: %s", thread_ts, e)
            return
        if not messages:
            return

        question = messages[0].text
        replies = [
            reply
            for reply in messages[1:]
            if len(reply.text.strip()) >= MIN_THREAD_ANSWER_LENGTH
        ]
        answer = self.archive.answer_miner.pick_best_answer(
            replies, question, bot_user_id=bot_user_id
        )
        if not answer:
            logger.debug("No answer mined from thread %s in %s", thread_ts, channel_id)
            return

        logger.info("Learned thread answer for %r: %r", question[:50], answer[:50])
        channel_name = await self.archive.resolve_channel_name(channel_id)
        self.archive.invalidate(channel_name)
        qa_thread_answers_learned.inc()

    async def handle_question(self, channel_id: str, ts: str, text: str) -> None:
        if not self.registry.mark_if_new(channel_id, ts):
            logger.debug("Skipping already processed message %s in %s", ts, channel_id)
            qa_questions_processed.labels(outcome="duplicate").inc()
            return

        reactions = self.reactions
        await self.notifier.add(channel_id, ts, reactions.seen)
        await self.notifier.add(channel_id, ts, reactions.searching)

        try:
            channel_name = await self.archive.resolve_channel_name(channel_id)
            result = await self.matcher.search(
                text, channel_name, self.similarity_threshold, exclude_id=ts
            )

            if result.found:
                await self.notifier.remove(channel_id, ts, reactions.searching)
                await self.notifier.add(channel_id, ts, reactions.thinking)
                reply = await self.compose_reply(result, exclude_ts=ts)
                await self.notifier.remove(channel_id, ts, reactions.thinking)
                await self.notifier.add(channel_id, ts, reactions.done)
                await self.notifier.reply(channel_id, ts, reply)
                qa_questions_processed.labels(outcome="answered").inc()
            else:
                await self.notifier.remove(channel_id, ts, reactions.searching)
                await self.notifier.add(channel_id, ts, reactions.not_found)
                await self.notifier.reply(channel_id, ts, FALLBACK_MESSAGE)
                qa_questions_processed.labels(outcome="not_found").inc()

        except Exception:
            logger.exception("Failed to answer question %s in %s", ts, channel_id)
            await self.notifier.remove(channel_id, ts, reactions.searching)
            await self.notifier.remove(channel_id, ts, reactions.thinking)
            await self.notifier.add(channel_id, ts, reactions.error)
            await self.notifier.reply(channel_id, ts, ERROR_MESSAGE)
            qa_questions_processed.labels(outcome="error").inc()

    async def compose_reply(
        self, result: SearchResult, exclude_ts: Optional[str] = None
    ) -> str:
        if has_usable_answer(result.answer):
            return result.answer
        if result.matched_question:
            remined = await self.archive.find_thread_answer(
                result.matched_question, result.channel, exclude_ts=exclude_ts
            )
            if has_usable_answer(remined):
                return remined
        return FALLBACK_MESSAGE
