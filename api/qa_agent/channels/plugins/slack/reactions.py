"""Fire-and-forget message reactions and replies.

Reactions show the asker how far processing got. None of these calls may
interrupt question handling, so every failure is logged and swallowed here.
"""

import logging
from typing import Optional

from qa_agent.channels.plugins.slack.client.api import (
    MessagingPlatform,
    PlatformAPIError,
)

logger = logging.getLogger(__name__)


class ReactionNotifier:
    def __init__(self, platform: MessagingPlatform):
        self.platform = platform

    async def add(self, channel_id: str, ts: str, name: str) -> bool:
        try:
            await self.platform.add_reaction(channel_id, ts, name)
            return True
        except PlatformAPIError as e:
            # already_reacted is harmless
            logger.warning("Failed to add reaction %s to %s: %s", name, ts, e)
            return False

    async def remove(self, channel_id: str, ts: str, name: str) -> bool:
        try:
            await self.platform.remove_reaction(channel_id, ts, name)
            return True
        except PlatformAPIError as e:
            # no_reaction is expected when the add never landed
            logger.debug("Failed to remove reaction %s from %s: %s", name, ts, e)
            return False

    async def reply(self, channel_id: str, thread_ts: str, text: str) -> Optional[str]:
        """Post ``text`` in the thread of ``thread_ts``; None when posting failed."""
        try:
            return await self.platform.post_message(
                channel_id, text, thread_ts=thread_ts
            )
        except PlatformAPIError as e:
            logger.error(
                "Failed to post reply in %s to %s: %s", channel_id, thread_ts, e
            )
            return None
