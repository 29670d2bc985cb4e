"""Slack Web API access for the Q&A agent.

Wraps ``slack_sdk``'s async client behind the small ``MessagingPlatform``
protocol the rest of the agent depends on, so services can be exercised
against in-memory fakes.

Example:
    api = SlackWebAPI(bot_token="xoxb-...", app_token="xapp-...")
    page = await api.get_channel_history("C0123", limit=200)
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import aiohttp
from qa_agent.metrics.qa_metrics import qa_platform_api_errors
from qa_agent.services.qa.models import ChannelMessage, HistoryPage
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class PlatformAPIError(Exception):
    """Raised when a messaging platform call fails."""

    def __init__(self, method: str, error: str):
        super().__init__(f"{method} failed: {error}")
        self.method = method
        self.error = error


class RateLimitedError(PlatformAPIError):
    """Raised when the platform rejects a call with a rate limit."""


@runtime_checkable
class MessagingPlatform(Protocol):
    """Operations the Q&A agent needs from a chat platform."""

    async def open_session(self) -> str: ...

    async def list_channels(self, limit: int = 1000) -> List[Dict[str, Any]]: ...

    async def get_channel_history(
        self, channel_id: str, cursor: Optional[str] = None, limit: int = 200
    ) -> HistoryPage: ...

    async def get_thread_replies(
        self, channel_id: str, thread_ts: str, limit: Optional[int] = None
    ) -> List[ChannelMessage]: ...

    async def post_message(
        self, channel_id: str, text: str, thread_ts: Optional[str] = None
    ) -> Optional[str]: ...

    async def add_reaction(self, channel_id: str, ts: str, name: str) -> None: ...

    async def remove_reaction(self, channel_id: str, ts: str, name: str) -> None: ...

    async def get_current_user_id(self) -> Optional[str]: ...

    async def get_channel_info(self, channel_id: str) -> Dict[str, Any]: ...


class SlackWebAPI:
    """``MessagingPlatform`` backed by the Slack Web API."""

    def __init__(
        self,
        bot_token: str,
        app_token: str = "",
        timeout_seconds: int = 10,
        client: Optional[AsyncWebClient] = None,
        app_client: Optional[AsyncWebClient] = None,
    ):
        self.client = client or AsyncWebClient(token=bot_token, timeout=timeout_seconds)
        # apps.connections.open must be called with the app-level token
        self.app_client = app_client or AsyncWebClient(
            token=app_token, timeout=timeout_seconds
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RateLimitedError),
        reraise=True,
    )
    async def _call(
        self, method: str, client: Optional[AsyncWebClient] = None, **kwargs: Any
    ) -> Dict[str, Any]:
        """Invoke a Web API method, retrying when rate limited.

        Raises:
            RateLimitedError: If still rate limited after retries
            PlatformAPIError: For any other Slack, network or timeout failure
        """
        target = client or self.client
        try:
            response = await getattr(target, method)(**kwargs)
            return response.data if hasattr(response, "data") else dict(response)
        except SlackApiError as e:
            error = str(e.response.get("error", "unknown_error"))
            qa_platform_api_errors.labels(method=method).inc()
            if error == "ratelimited":
                logger.warning("Slack %s rate limited", method)
                raise RateLimitedError(method, error) from e
            raise PlatformAPIError(method, error) from e
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            qa_platform_api_errors.labels(method=method).inc()
            raise PlatformAPIError(method, type(e).__name__) from e

    async def open_session(self) -> str:
        data = await self._call("apps_connections_open", client=self.app_client)
        url = data.get("url")
        if not url:
            raise PlatformAPIError("apps_connections_open", "missing_url")
        return url

    async def list_channels(self, limit: int = 1000) -> List[Dict[str, Any]]:
        data = await self._call(
            "conversations_list",
            limit=limit,
            types="public_channel,private_channel",
            exclude_archived=True,
        )
        return list(data.get("channels") or [])

    async def get_channel_history(
        self, channel_id: str, cursor: Optional[str] = None, limit: int = 200
    ) -> HistoryPage:
        kwargs: Dict[str, Any] = {"channel": channel_id, "limit": limit}
        if cursor:
            kwargs["cursor"] = cursor
        data = await self._call("conversations_history", **kwargs)
        messages = [ChannelMessage.from_slack(m) for m in data.get("messages") or []]
        next_cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
        return HistoryPage(messages=messages, next_cursor=next_cursor)

    async def get_thread_replies(
        self, channel_id: str, thread_ts: str, limit: Optional[int] = None
    ) -> List[ChannelMessage]:
        kwargs: Dict[str, Any] = {"channel": channel_id, "ts": thread_ts}
        if limit is not None:
            kwargs["limit"] = limit
        data = await self._call("conversations_replies", **kwargs)
        return [ChannelMessage.from_slack(m) for m in data.get("messages") or []]

    async def post_message(
        self, channel_id: str, text: str, thread_ts: Optional[str] = None
    ) -> Optional[str]:
        kwargs: Dict[str, Any] = {"channel": channel_id, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        data = await self._call("chat_postMessage", **kwargs)
        return data.get("ts")

    async def add_reaction(self, channel_id: str, ts: str, name: str) -> None:
        await self._call("reactions_add", channel=channel_id, timestamp=ts, name=name)

    async def remove_reaction(self, channel_id: str, ts: str, name: str) -> None:
        await self._call(
            "reactions_remove", channel=channel_id, timestamp=ts, name=name
        )

    async def get_current_user_id(self) -> Optional[str]:
        data = await self._call("auth_test")
        return data.get("user_id")

    async def get_channel_info(self, channel_id: str) -> Dict[str, Any]:
        data = await self._call("conversations_info", channel=channel_id)
        return dict(data.get("channel") or {})

    async def close(self) -> None:
        for client in (self.client, self.app_client):
            session = getattr(client, "session", None)
            if session is not None and not session.closed:
                await session.close()
