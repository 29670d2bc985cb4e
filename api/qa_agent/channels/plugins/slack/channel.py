"""Slack Socket Mode channel lifecycle."""

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from qa_agent.channels.plugins.slack.client.api import MessagingPlatform
from qa_agent.channels.plugins.slack.client.socket_mode import SocketModeConnection
from qa_agent.channels.plugins.slack.config import SlackChannelConfig
from qa_agent.channels.plugins.slack.dedup import ProcessedMessageRegistry
from qa_agent.channels.plugins.slack.event_processor import RealtimeEventProcessor
from qa_agent.services.qa.channel_archive import ChannelArchive
from qa_agent.services.qa.qa_matcher import QAMatcher

logger = logging.getLogger(__name__)


class SlackChannel:
    """Wire the Socket Mode connection to the realtime event processor.

    ``start`` launches the event workers and the connection's listen loop as
    background tasks; ``stop`` tears both down.
    """

    channel_id: str = "slack"

    def __init__(
        self,
        config: SlackChannelConfig,
        platform: MessagingPlatform,
        archive: ChannelArchive,
        matcher: QAMatcher,
        connection: Optional[SocketModeConnection] = None,
    ):
        self.config = config
        self.connection = connection or SocketModeConnection(
            platform, reconnect_delay_seconds=config.reconnect_delay_seconds
        )
        self.processor = RealtimeEventProcessor(
            platform=platform,
            archive=archive,
            matcher=matcher,
            acknowledge=self.connection.send_json,
            registry=ProcessedMessageRegistry(max_size=config.processed_messages_max),
            reactions=config.reactions,
            similarity_threshold=config.similarity_threshold,
            worker_count=config.worker_count,
            thread_analysis_delay_seconds=config.thread_analysis_delay_seconds,
        )
        self.connection.on_frame(self.processor.handle_frame)
        self._listen_task: Optional[asyncio.Task[None]] = None

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def is_running(self) -> bool:
        return self._listen_task is not None and not self._listen_task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        await self.processor.start()
        self._listen_task = asyncio.create_task(self.connection.listen_forever())
        logger.info("Slack channel started")

    async def stop(self) -> None:
        await self.connection.stop_listening()
        if self._listen_task is not None:
            self._listen_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._listen_task
            self._listen_task = None
        await self.processor.stop()
        logger.info("Slack channel stopped")

    def health_check(self) -> dict:
        return {
            "channel": self.channel_id,
            "running": self.is_running,
            "connected": self.is_connected,
            "state": self.connection.state.value,
            "processed_messages": len(self.processor.registry),
        }
