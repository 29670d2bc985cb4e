"""Answer new questions from previously observed channel Q&A."""

import logging
import time
from typing import List, Optional

from qa_agent.metrics.qa_metrics import qa_search_similarity
from qa_agent.services.qa.channel_archive import ChannelArchive
from qa_agent.services.qa.models import ChannelStats, QAEntry, QAMatch, SearchResult
from qa_agent.services.qa.text_similarity import similarity

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "새로운 질문이네요! 채널 담당자 님께 문의해주시면 좋을 것 같아요 💡"

# Answers this short are treated as missing and re-mined
MIN_ANSWER_LENGTH = 3


def has_usable_answer(answer: str) -> bool:
    return len(answer) > MIN_ANSWER_LENGTH


class QAMatcher:
    """Find the most similar previously asked question in a channel.

    Scores every mined entry against the new question and keeps the best one
    at or above the threshold, preferring entries that already carry a usable
    answer. When the chosen answer is unusable the matched question's thread
    is re-mined once before giving up on the answer.
    """

    def __init__(self, archive: ChannelArchive, default_threshold: float = 0.7):
        self.archive = archive
        self.default_threshold = default_threshold

    def best_match(
        self,
        question: str,
        entries: List[QAEntry],
        threshold: float,
        exclude_id: Optional[str] = None,
    ) -> Optional[QAMatch]:
        """Pick the highest scoring entry at or above ``threshold``.

        Answered entries win over unanswered ones regardless of score, so a
        freshly asked question that was crawled into history does not shadow
        the thread that answered it. ``exclude_id`` drops one entry by ID.
        """
        matches = [
            QAMatch(entry=entry, similarity=similarity(question, entry.question))
            for entry in entries
            if exclude_id is None or entry.id != exclude_id
        ]
        matches = [match for match in matches if match.similarity >= threshold]
        if not matches:
            return None

        answered = [m for m in matches if has_usable_answer(m.entry.answer)]
        # max() returns the first maximal item, keeping first-seen on ties
        return max(answered or matches, key=lambda m: m.similarity)

    async def search(
        self,
        question: str,
        channel: str,
        threshold: Optional[float] = None,
        exclude_id: Optional[str] = None,
    ) -> SearchResult:
        threshold = self.default_threshold if threshold is None else threshold
        entries = await self.archive.get_qa_history(channel, self.archive.large_limit)
        match = self.best_match(question, entries, threshold, exclude_id=exclude_id)

        if match is None:
            logger.info(
                "No match in #%s for %r across %d entries (threshold=%.2f)",
                channel,
                question[:50],
                len(entries),
                threshold,
            )
            return self.not_found(question, channel)

        answer = match.entry.answer
        if not has_usable_answer(answer):
            remined = await self.archive.find_thread_answer(
                match.entry.question, channel, exclude_ts=exclude_id
            )
            if remined:
                answer = remined

        qa_search_similarity.observe(match.similarity)
        logger.info(
            "Matched %r to %r in #%s (similarity=%.3f)",
            question[:50],
            match.entry.question[:50],
            channel,
            match.similarity,
        )
        return SearchResult(
            found=True,
            original_question=question,
            matched_question=match.entry.question,
            answer=answer,
            similarity=match.similarity,
            channel=channel,
            timestamp_millis=match.entry.timestamp_millis,
            author=match.entry.author,
        )

    @staticmethod
    def not_found(question: str, channel: str) -> SearchResult:
        return SearchResult(
            found=False,
            original_question=question,
            answer=FALLBACK_MESSAGE,
            channel=channel,
            timestamp_millis=int(time.time() * 1000),
        )

    async def history(self, channel: str, limit: int) -> List[QAEntry]:
        return await self.archive.get_qa_history(channel, limit)

    async def stats(self, channel: str) -> ChannelStats:
        return await self.archive.stats(channel)
