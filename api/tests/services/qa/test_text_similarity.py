"""Tests for keyword-overlap text similarity."""

import pytest
from qa_agent.services.qa.text_similarity import (
    EDIT_DISTANCE_SENTINEL,
    edit_distance,
    is_question_like,
    similarity,
    tokenize,
)


@pytest.mark.unit
class TestTokenize:
    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Deploy, the APP!") == ["deploy", "the", "app"]

    def test_keeps_hangul_and_digits(self):
        assert tokenize("배포는 v2 어떻게?") == ["배포는", "v2", "어떻게"]

    def test_drops_single_character_tokens(self):
        assert tokenize("a 뭐 ok") == ["ok"]

    def test_empty_text(self):
        assert tokenize("") == []
        assert tokenize("?!.") == []


@pytest.mark.unit
class TestEditDistance:
    def test_identical_strings(self):
        assert edit_distance("deploy", "deploy") == 0

    def test_single_substitution(self):
        assert edit_distance("cat", "bat") == 1

    def test_classic_example(self):
        assert edit_distance("kitten", "sitting") == 3

    def test_single_insertion(self):
        assert edit_distance("배포", "배포는") == 1

    def test_long_strings_short_circuit(self):
        assert edit_distance("a" * 11, "a" * 11) == EDIT_DISTANCE_SENTINEL

    def test_length_gap_short_circuits(self):
        assert edit_distance("ab", "abcd") == EDIT_DISTANCE_SENTINEL


@pytest.mark.unit
class TestSimilarity:
    def test_empty_text_scores_zero(self):
        assert similarity("", "배포 방법") == 0.0
        assert similarity("배포 방법", "") == 0.0

    def test_text_without_keywords_scores_zero(self):
        assert similarity("? !", "배포 방법") == 0.0

    def test_identical_text_scores_one(self):
        assert similarity("배포 방법 알려주세요", "배포 방법 알려주세요") == 1.0

    @pytest.mark.parametrize(
        "other",
        [
            "배포 절차",
            "오늘 점심 뭐 먹지",
            "배포는 어떻게 하나요?",
            "권한 설정 변경",
        ],
    )
    def test_self_similarity_is_maximal(self, other):
        text = "배포 방법이 뭔가요"
        assert similarity(text, text) >= similarity(text, other)

    def test_unrelated_text_scores_zero(self):
        assert similarity("오늘 점심 뭐 먹지", "배포는 어떻게 하나요?") == 0.0

    def test_stem_matches_inflected_form(self):
        score = similarity("배포 방법이 뭔가요", "배포는 어떻게 하나요?")
        assert score == pytest.approx(2 / 6)
        assert score >= 0.3

    def test_score_is_symmetric(self):
        first = "배포 방법이 뭔가요"
        second = "배포는 어떻게 하나요?"
        assert similarity(first, second) == similarity(second, first)

    def test_exact_matches_weigh_more_than_partial(self):
        exact = similarity("vpn setup guide", "vpn setup help")
        partial = similarity("vpn setup guide", "vpns setups help")
        assert exact > partial

    def test_score_is_clamped(self):
        assert similarity("deploy deploys", "deploy deploys") <= 1.0


@pytest.mark.unit
class TestQuestionLike:
    @pytest.mark.parametrize(
        "text",
        [
            "How do I deploy?",
            "이거 어떻게 해요",
            "권한 변경 방법 알려주세요",
            "왜 안될까",
            "배포 언제 하나요",
            "전각 물음표？",
        ],
    )
    def test_detects_questions(self, text):
        assert is_question_like(text)

    def test_plain_statement_is_not_question(self):
        assert not is_question_like("설정 > 권한에서 변경하세요")
