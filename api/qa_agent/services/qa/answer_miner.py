"""Select the most useful reply from a question's thread."""

import logging
from typing import Optional, Sequence

from qa_agent.services.qa.models import ChannelMessage
from qa_agent.services.qa.text_similarity import is_question_like

logger = logging.getLogger(__name__)


class AnswerMiner:
    """Pick the best answer among thread replies.

    Bot replies and fragments shorter than ``min_length`` are discarded.
    Replies that read like follow-up questions are only used when nothing
    else is left. Of the remaining candidates the longest text wins.
    """

    def __init__(self, min_length: int = 3):
        self.min_length = min_length

    def pick_best_answer(
        self,
        replies: Sequence[ChannelMessage],
        original_question: str,
        bot_user_id: Optional[str] = None,
    ) -> str:
        candidates = [
            reply.text.strip()
            for reply in replies
            if not reply.is_from_bot(bot_user_id)
            and reply.text.strip()
            and len(reply.text.strip()) >= self.min_length
        ]
        if not candidates:
            return ""

        answers = [text for text in candidates if not is_question_like(text)]
        preferred = answers or candidates
        best = max(preferred, key=len)

        logger.debug(
            "Picked answer for %r from %d candidates (%d non-question)",
            original_question[:50],
            len(candidates),
            len(answers),
        )
        return best
