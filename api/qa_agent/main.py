"""
FastAPI application for the Slack Q&A agent.
This module sets up the API server, the Q&A services and, when enabled,
the Slack Socket Mode channel.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from qa_agent.channels.plugins.slack.channel import SlackChannel
from qa_agent.channels.plugins.slack.client.api import SlackWebAPI
from qa_agent.channels.plugins.slack.config import SlackChannelConfig
from qa_agent.core.config import get_settings
from qa_agent.core.error_handlers import (
    base_exception_handler,
    unhandled_exception_handler,
)
from qa_agent.core.exceptions import BaseAppException
from qa_agent.routes import health, qa
from qa_agent.services.qa.channel_archive import ChannelArchive
from qa_agent.services.qa.qa_cache import QACache
from qa_agent.services.qa.qa_matcher import QAMatcher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("qa_agent.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application startup...")

    settings = get_settings()
    app.state.settings = settings

    platform = SlackWebAPI(
        bot_token=settings.SLACK_BOT_TOKEN,
        app_token=settings.SLACK_APP_TOKEN,
        timeout_seconds=settings.SLACK_API_TIMEOUT_SECONDS,
    )
    archive = ChannelArchive(
        platform,
        cache=QACache(ttl_seconds=settings.QA_CACHE_TTL_SECONDS),
        page_size=settings.QA_HISTORY_PAGE_SIZE,
        page_delay_seconds=settings.QA_HISTORY_PAGE_DELAY_SECONDS,
        large_limit=settings.QA_HISTORY_MAX_MESSAGES,
        channel_list_limit=settings.QA_CHANNEL_LIST_LIMIT,
    )
    app.state.slack_platform = platform
    app.state.channel_archive = archive
    app.state.qa_matcher = QAMatcher(
        archive, default_threshold=settings.QA_SEARCH_DEFAULT_THRESHOLD
    )

    slack_config = SlackChannelConfig.from_settings(settings)
    if slack_config.enabled:
        logger.info("Starting Slack Socket Mode channel...")
        app.state.slack_channel = SlackChannel(
            slack_config, platform, archive, app.state.qa_matcher
        )
        await app.state.slack_channel.start()
    else:
        logger.info("Slack Socket Mode disabled - skipping realtime processor")
        app.state.slack_channel = None

    # Yield control to the application
    yield

    # Shutdown
    logger.info("Application shutdown...")

    if app.state.slack_channel is not None:
        logger.info("Stopping Slack Socket Mode channel...")
        await app.state.slack_channel.stop()

    await platform.close()


# Create FastAPI application
app = FastAPI(
    title=get_settings().PROJECT_NAME,
    docs_url="/api/docs",
    lifespan=lifespan,
)

app.add_exception_handler(BaseAppException, base_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.router, tags=["Health"])
app.include_router(qa.router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
