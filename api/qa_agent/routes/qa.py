"""Q&A search, history and cache endpoints."""

import logging
import time
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from qa_agent.core.exceptions import ServiceUnavailableError, ValidationError
from qa_agent.services.qa.models import (
    CacheInvalidateRequest,
    ChannelStats,
    QAEntry,
    SearchRequest,
    SearchResult,
)
from qa_agent.services.qa.qa_matcher import QAMatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/slack", tags=["Slack Q&A"])


def get_qa_matcher(request: Request) -> QAMatcher:
    matcher = getattr(request.app.state, "qa_matcher", None)
    if matcher is None:
        raise ServiceUnavailableError("Q&A matcher")
    return matcher


def _require_channel(channel: str) -> str:
    channel = channel.strip()
    if not channel:
        raise ValidationError("Channel name must not be empty", field="channel")
    return channel


@router.post("/search", response_model=SearchResult)
async def search_similar_question(
    body: SearchRequest, matcher: QAMatcher = Depends(get_qa_matcher)
):
    """Find a previously answered question similar to ``body.question``."""
    _require_channel(body.channel)
    try:
        return await matcher.search(body.question, body.channel, body.threshold)
    except Exception as e:
        logger.exception("Search failed for channel %s", body.channel)
        fallback = SearchResult(
            found=False,
            original_question=body.question,
            answer=f"검색 중 오류가 발생했습니다: {e}",
            channel=body.channel,
            timestamp_millis=int(time.time() * 1000),
        )
        return JSONResponse(status_code=500, content=fallback.model_dump())


@router.get("/history/{channel}", response_model=List[QAEntry])
async def get_channel_history(
    channel: str,
    limit: int = Query(default=20, ge=1, le=1000),
    matcher: QAMatcher = Depends(get_qa_matcher),
):
    channel = _require_channel(channel)
    return await matcher.history(channel, limit)


@router.get("/stats/{channel}", response_model=ChannelStats)
async def get_channel_stats(
    channel: str, matcher: QAMatcher = Depends(get_qa_matcher)
):
    channel = _require_channel(channel)
    return await matcher.stats(channel)


@router.post("/cache/invalidate")
async def invalidate_channel_cache(
    body: CacheInvalidateRequest, matcher: QAMatcher = Depends(get_qa_matcher)
):
    channel = _require_channel(body.channel)
    removed = matcher.archive.invalidate(channel)
    return {"channel": channel, "invalidated": removed}


@router.get("/health")
async def slack_health(request: Request):
    """Report Q&A service readiness and Socket Mode connection status."""
    slack_channel = getattr(request.app.state, "slack_channel", None)
    matcher = getattr(request.app.state, "qa_matcher", None)
    return {
        "status": "healthy" if matcher is not None else "initializing",
        "socket_mode": (
            slack_channel.health_check() if slack_channel is not None else None
        ),
        "cache": matcher.archive.cache.get_statistics() if matcher else None,
    }
