"""Tests for the Slack channel lifecycle wiring."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr
from qa_agent.channels.plugins.slack.channel import SlackChannel
from qa_agent.channels.plugins.slack.client.socket_mode import (
    ConnectionState,
    SocketModeConnection,
)
from qa_agent.channels.plugins.slack.config import SlackChannelConfig


@pytest.fixture
def config() -> SlackChannelConfig:
    return SlackChannelConfig(
        enabled=True,
        bot_token=SecretStr("xoxb-1"),
        app_token=SecretStr("xapp-1"),
        worker_count=2,
        processed_messages_max=10,
    )


@pytest.fixture
def connection() -> MagicMock:
    connection = MagicMock(spec=SocketModeConnection)
    connection.listen_forever = AsyncMock()
    connection.stop_listening = AsyncMock()
    connection.send_json = AsyncMock()
    connection.state = ConnectionState.CONNECTED
    connection.is_connected = True
    return connection


@pytest.fixture
def slack_channel(config, connection, platform, archive, matcher) -> SlackChannel:
    return SlackChannel(config, platform, archive, matcher, connection=connection)


@pytest.mark.unit
def test_wires_processor_to_connection(slack_channel, connection, config):
    connection.on_frame.assert_called_once_with(slack_channel.processor.handle_frame)
    assert slack_channel.processor.acknowledge is connection.send_json
    assert slack_channel.processor.worker_count == 2
    assert slack_channel.processor.registry.max_size == 10
    assert slack_channel.processor.reactions == config.reactions


@pytest.mark.asyncio
async def test_start_and_stop(slack_channel, connection):
    await slack_channel.start()
    await asyncio.sleep(0)
    assert slack_channel.processor.is_running

    await slack_channel.stop()

    connection.listen_forever.assert_awaited_once()
    connection.stop_listening.assert_awaited_once()
    assert not slack_channel.processor.is_running
    assert not slack_channel.is_running


@pytest.mark.asyncio
async def test_health_check(slack_channel):
    slack_channel.processor.registry.mark_if_new("C001", "1.0")

    health = slack_channel.health_check()

    assert health == {
        "channel": "slack",
        "running": False,
        "connected": True,
        "state": "connected",
        "processed_messages": 1,
    }
