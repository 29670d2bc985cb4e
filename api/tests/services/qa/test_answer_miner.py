"""Tests for thread answer selection."""

import pytest
from qa_agent.services.qa.answer_miner import AnswerMiner
from qa_agent.services.qa.models import ChannelMessage


def _reply(text: str, user: str = "U002", bot_id=None) -> ChannelMessage:
    return ChannelMessage(ts="1700000001.000000", text=text, user=user, bot_id=bot_id)


@pytest.fixture
def miner() -> AnswerMiner:
    return AnswerMiner()


@pytest.mark.unit
def test_prefers_statement_over_follow_up_question(miner):
    replies = [_reply("이거 어떻게 해요?"), _reply("설정 > 권한에서 변경하세요")]

    answer = miner.pick_best_answer(replies, "권한 설정 어떻게 하나요")

    assert answer == "설정 > 권한에서 변경하세요"


@pytest.mark.unit
def test_returns_longest_non_question_reply(miner):
    replies = [
        _reply("재시작 해보세요"),
        _reply("캐시를 지우고 앱을 재시작하면 해결됩니다"),
        _reply("저도 같은 문제가 있어요 왜 그럴까요?"),
    ]

    assert miner.pick_best_answer(replies, "앱이 멈춰요") == "캐시를 지우고 앱을 재시작하면 해결됩니다"


@pytest.mark.unit
def test_falls_back_to_questions_when_nothing_else(miner):
    replies = [_reply("혹시 로그 있나요?"), _reply("버전이 뭐예요? 최신인가요?")]

    assert miner.pick_best_answer(replies, "에러가 나요") == "버전이 뭐예요? 최신인가요?"


@pytest.mark.unit
def test_ignores_bot_replies(miner):
    replies = [
        _reply("봇이 남긴 아주 길고 자세한 안내 메시지입니다", user="UBOT"),
        _reply("봇 통합이 보낸 메시지입니다", user=None, bot_id="B123"),
        _reply("관리자에게 요청하세요"),
    ]

    answer = miner.pick_best_answer(replies, "권한 요청", bot_user_id="UBOT")

    assert answer == "관리자에게 요청하세요"


@pytest.mark.unit
def test_ignores_blank_and_short_replies(miner):
    replies = [_reply("   "), _reply("ok"), _reply("")]

    assert miner.pick_best_answer(replies, "배포 방법") == ""


@pytest.mark.unit
def test_no_replies(miner):
    assert miner.pick_best_answer([], "배포 방법") == ""
