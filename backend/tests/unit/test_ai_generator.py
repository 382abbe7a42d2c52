"""
Unit tests for AI review question generation and answer evaluation.

The LLM client is mocked; tests cover prompt construction, parsing of
model output and fallbacks for malformed responses.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from studynotes.enums.review import (
    AiQuestionType,
    AiReviewDifficulty,
    AiReviewEvaluation,
    AiReviewMode,
)
from studynotes.middleware.error_handling import LLMError
from studynotes.models.ai_review import AiReviewQuestion
from studynotes.models.llm_usage import LLMUsage
from studynotes.services.llm.client import AiOperation
from studynotes.services.review.ai_generator import (
    QUESTION_TYPES_BY_DIFFICULTY,
    AiAnswerEvaluator,
    AiQuestionGenerator,
    select_question_types,
)


def mock_llm(response) -> MagicMock:
    llm = MagicMock()
    llm.complete = AsyncMock(
        return_value=(response, LLMUsage(model="test/model", total_tokens=120))
    )
    return llm


class TestSelectQuestionTypes:
    def test_cycles_through_difficulty_types(self):
        easy = QUESTION_TYPES_BY_DIFFICULTY[AiReviewDifficulty.EASY]

        types = select_question_types(AiReviewDifficulty.EASY, len(easy) + 2)

        assert types[: len(easy)] == easy
        assert types[len(easy):] == easy[:2]

    def test_every_difficulty_has_types(self):
        for difficulty in AiReviewDifficulty:
            assert select_question_types(difficulty, 1)


class TestAiQuestionGenerator:
    @pytest.mark.asyncio
    async def test_parses_questions(self):
        llm = mock_llm(
            {
                "questions": [
                    {"question_type": "scenario", "question": "What happens if...?"},
                    {
                        "question_type": "multiple_choice_conceptual",
                        "question": "Which is true?",
                        "options": ["A", "B", 3],
                    },
                ]
            }
        )
        generator = AiQuestionGenerator(llm)

        questions = await generator.generate(
            "Cells are small.", AiReviewDifficulty.MEDIUM, AiReviewMode.SEPARATE_QUESTIONS, 2
        )

        assert [q.question_type for q in questions] == [
            AiQuestionType.SCENARIO,
            AiQuestionType.MULTIPLE_CHOICE_CONCEPTUAL,
        ]
        assert questions[0].options is None
        assert questions[1].options == ["A", "B", "3"]

        kwargs = llm.complete.call_args.kwargs
        assert kwargs["operation"] == AiOperation.QUESTION_GENERATION
        assert kwargs["json_mode"] is True
        assert "Cells are small." in kwargs["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_accepts_bare_list(self):
        generator = AiQuestionGenerator(mock_llm([{"question": "Define osmosis."}]))

        (question,) = await generator.generate(
            "text", AiReviewDifficulty.EASY, AiReviewMode.MONO_TEST, 1
        )

        # Unknown type falls back to the requested type for that slot
        assert question.question_type == AiQuestionType.FACT_BASED
        assert question.question == "Define osmosis."

    @pytest.mark.asyncio
    async def test_drops_blank_questions(self):
        generator = AiQuestionGenerator(
            mock_llm({"questions": [{"question": "  "}, "junk", {"question": "Why?"}]})
        )

        questions = await generator.generate(
            "text", AiReviewDifficulty.HARD, AiReviewMode.SEPARATE_QUESTIONS, 3
        )

        assert [q.question for q in questions] == ["Why?"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [{"questions": []}, {"other": 1}, "not json"])
    async def test_unusable_output_raises(self, response):
        generator = AiQuestionGenerator(mock_llm(response))

        with pytest.raises(LLMError):
            await generator.generate(
                "text", AiReviewDifficulty.EASY, AiReviewMode.SEPARATE_QUESTIONS, 2
            )

    @pytest.mark.asyncio
    async def test_model_override_is_passed(self):
        llm = mock_llm({"questions": [{"question": "Q?"}]})
        generator = AiQuestionGenerator(llm, model="anthropic/claude-test")

        await generator.generate("text", AiReviewDifficulty.EASY, AiReviewMode.SEPARATE_QUESTIONS, 1)

        assert llm.complete.call_args.kwargs["model"] == "anthropic/claude-test"


class TestAiAnswerEvaluator:
    @pytest.fixture
    def question(self) -> AiReviewQuestion:
        return AiReviewQuestion(
            id="s-q1",
            question_type=AiQuestionType.EXPLAIN_OWN_WORDS,
            question="Explain diffusion.",
        )

    @pytest.mark.asyncio
    async def test_parses_verdict(self, question):
        llm = mock_llm({"evaluation": "partial", "score": 55, "message": "Mention gradients."})
        evaluator = AiAnswerEvaluator(llm)

        verdict = await evaluator.evaluate(question, "Stuff moves.", "Diffusion is...")

        assert verdict.evaluation == AiReviewEvaluation.PARTIAL
        assert verdict.score == 55.0
        assert verdict.message == "Mention gradients."
        assert llm.complete.call_args.kwargs["operation"] == AiOperation.ANSWER_EVALUATION

    @pytest.mark.asyncio
    async def test_unknown_verdict_is_incorrect(self, question):
        evaluator = AiAnswerEvaluator(mock_llm({"evaluation": "great", "score": 80}))

        verdict = await evaluator.evaluate(question, "answer", "content")

        assert verdict.evaluation == AiReviewEvaluation.INCORRECT
        assert verdict.score == 80.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "evaluation,expected",
        [("correct", 100.0), ("partial", 50.0), ("incorrect", 0.0)],
    )
    async def test_out_of_range_score_uses_default(self, question, evaluation, expected):
        evaluator = AiAnswerEvaluator(mock_llm({"evaluation": evaluation, "score": 250}))

        verdict = await evaluator.evaluate(question, "answer", "content")

        assert verdict.score == expected

    @pytest.mark.asyncio
    async def test_missing_verdict_raises(self, question):
        evaluator = AiAnswerEvaluator(mock_llm({"score": 10}))

        with pytest.raises(LLMError):
            await evaluator.evaluate(question, "answer", "content")
