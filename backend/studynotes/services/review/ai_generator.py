"""
AI Review Question Generation and Answer Evaluation

LLM-powered collaborators of the AI review pipeline:

- AiQuestionGenerator turns note text into review questions of the
  requested difficulty
- AiAnswerEvaluator grades a learner's free-text answer as correct,
  partial or incorrect with a 0-100 score and feedback

Question types by difficulty:
- easy: recall (facts, definitions, true/false, cloze...)
- medium: understanding and application (scenarios, compare/contrast...)
- hard: evaluation and synthesis (justify, critique, predict...)

Both raise LLMError when the model output is unusable; the pipeline turns
that into a failed session.
"""

import logging
from itertools import cycle, islice
from typing import Any, Optional

from studynotes.config import settings
from studynotes.enums.review import (
    AiQuestionType,
    AiReviewDifficulty,
    AiReviewEvaluation,
    AiReviewMode,
)
from studynotes.middleware.error_handling import LLMError
from studynotes.models.ai_review import AiReviewQuestion, AnswerEvaluation, GeneratedQuestion
from studynotes.services.llm.client import AiOperation, LLMClient, build_messages

logger = logging.getLogger(__name__)


QUESTION_TYPES_BY_DIFFICULTY: dict[AiReviewDifficulty, list[AiQuestionType]] = {
    AiReviewDifficulty.EASY: [
        AiQuestionType.FACT_BASED,
        AiQuestionType.DEFINITION,
        AiQuestionType.TRUE_FALSE,
        AiQuestionType.FILL_IN_THE_BLANK,
        AiQuestionType.MULTIPLE_CHOICE_BASIC,
        AiQuestionType.FLASHCARD,
        AiQuestionType.MATCHING,
        AiQuestionType.CLOZE_DELETION,
    ],
    AiReviewDifficulty.MEDIUM: [
        AiQuestionType.EXPLAIN_OWN_WORDS,
        AiQuestionType.SCENARIO,
        AiQuestionType.COMPARE_CONTRAST,
        AiQuestionType.CAUSE_EFFECT,
        AiQuestionType.CATEGORIZATION,
        AiQuestionType.MULTIPLE_CHOICE_CONCEPTUAL,
        AiQuestionType.PROBLEM_SOLVING,
    ],
    AiReviewDifficulty.HARD: [
        AiQuestionType.JUSTIFY_DEFEND,
        AiQuestionType.CRITIQUE_STATEMENT,
        AiQuestionType.RANK_PRIORITIZE,
        AiQuestionType.SUMMARY,
        AiQuestionType.CONCEPT_MAP,
        AiQuestionType.PREDICTION_HYPOTHESIS,
    ],
}

DIFFICULTY_DESCRIPTIONS = {
    AiReviewDifficulty.EASY: "Easy: recall of facts, terms and basic concepts stated in the content.",
    AiReviewDifficulty.MEDIUM: "Medium: understanding and applying concepts, explaining relationships.",
    AiReviewDifficulty.HARD: "Hard: evaluating, justifying and synthesizing ideas beyond the literal text.",
}

CHOICE_TYPES = {
    AiQuestionType.MULTIPLE_CHOICE_BASIC,
    AiQuestionType.MULTIPLE_CHOICE_CONCEPTUAL,
    AiQuestionType.MATCHING,
    AiQuestionType.TRUE_FALSE,
}


QUESTION_GENERATION_PROMPT = """Create {count} review questions based on the content below.

Difficulty: {difficulty}
Format: {mode}

Use these question types, in this order:
{types}

Instructions:
1. Create exactly {count} questions
2. Each question tests a different aspect of the content
3. Questions must be answerable from the content
4. Include "options" only for multiple choice, matching and true/false questions

Return a JSON object:
{{
    "questions": [
        {{
            "question_type": "<type from the list>",
            "question": "The question text with clear instructions",
            "options": ["option 1", "option 2", "option 3", "option 4"]
        }}
    ]
}}

CONTENT:
{content}
"""

ANSWER_EVALUATION_PROMPT = """Evaluate a student's answer to a review question.

QUESTION TYPE: {question_type}

QUESTION:
{question}

STUDENT'S ANSWER:
{answer}

SOURCE CONTENT:
{content}

Criteria: accuracy, completeness, understanding and clarity.
- "correct": accurate, complete and shows understanding
- "partial": some correct elements but incomplete or with minor errors
- "incorrect": largely wrong, missing key points or a misunderstanding

Return a JSON object:
{{
    "evaluation": "correct" | "partial" | "incorrect",
    "score": <0-100>,
    "message": "Constructive feedback. If not correct, explain what the answer should include."
}}
"""

DEFAULT_SCORES = {
    AiReviewEvaluation.CORRECT: 100.0,
    AiReviewEvaluation.PARTIAL: 50.0,
    AiReviewEvaluation.INCORRECT: 0.0,
}


def select_question_types(
    difficulty: AiReviewDifficulty, count: int
) -> list[AiQuestionType]:
    """Cycle through the difficulty's question types until ``count`` are picked."""
    return list(islice(cycle(QUESTION_TYPES_BY_DIFFICULTY[difficulty]), count))


class AiQuestionGenerator:
    """Generates AI review questions from note content."""

    def __init__(self, llm_client: LLMClient, model: Optional[str] = None):
        self.llm = llm_client
        self.model = model

    async def generate(
        self,
        content: str,
        difficulty: AiReviewDifficulty,
        mode: AiReviewMode,
        count: int,
    ) -> list[GeneratedQuestion]:
        """
        Generate ``count`` questions from ``content``.

        Raises:
            LLMError: The model returned no usable questions
        """
        types = select_question_types(difficulty, count)
        prompt = QUESTION_GENERATION_PROMPT.format(
            count=count,
            difficulty=DIFFICULTY_DESCRIPTIONS[difficulty],
            mode=(
                "a single comprehensive test"
                if mode == AiReviewMode.MONO_TEST
                else "separate individual questions"
            ),
            types="\n".join(f"- {t.value}" for t in types),
            content=content[: settings.AI_REVIEW_MAX_SOURCE_CHARS],
        )
        messages = build_messages(
            prompt=prompt,
            system_prompt="You are an educational assessment expert. Always return valid JSON.",
        )

        response, usage = await self.llm.complete(
            operation=AiOperation.QUESTION_GENERATION,
            messages=messages,
            model=self.model,
            temperature=0.7,
            json_mode=True,
        )
        questions = self._parse_questions(response, types)
        logger.info(
            f"Generated {len(questions)} {difficulty.value} questions "
            f"(model={usage.model}, tokens={usage.total_tokens})"
        )
        return questions

    @staticmethod
    def _parse_questions(
        response: Any, expected_types: list[AiQuestionType]
    ) -> list[GeneratedQuestion]:
        items = response.get("questions") if isinstance(response, dict) else response
        if not isinstance(items, list):
            raise LLMError("Question generation returned no question list")

        questions = []
        for index, item in enumerate(items):
            if not isinstance(item, dict) or not str(item.get("question", "")).strip():
                continue
            try:
                question_type = AiQuestionType(item.get("question_type"))
            except ValueError:
                question_type = expected_types[min(index, len(expected_types) - 1)]

            options = item.get("options")
            if question_type not in CHOICE_TYPES or not isinstance(options, list):
                options = None

            questions.append(
                GeneratedQuestion(
                    question_type=question_type,
                    question=str(item["question"]).strip(),
                    options=[str(o) for o in options] if options else None,
                )
            )

        if not questions:
            raise LLMError("Question generation returned no usable questions")
        return questions


class AiAnswerEvaluator:
    """Grades learner answers to AI review questions."""

    def __init__(self, llm_client: LLMClient, model: Optional[str] = None):
        self.llm = llm_client
        self.model = model

    async def evaluate(
        self, question: AiReviewQuestion, answer: str, content: str
    ) -> AnswerEvaluation:
        """
        Evaluate one answer.

        Args:
            question: The generated question
            answer: The learner's non-empty answer
            content: Source text the question was generated from

        Returns:
            AnswerEvaluation with verdict, 0-100 score and feedback message
        """
        prompt = ANSWER_EVALUATION_PROMPT.format(
            question_type=question.question_type.value,
            question=question.question,
            answer=answer,
            content=content[: settings.AI_REVIEW_MAX_SOURCE_CHARS],
        )
        messages = build_messages(
            prompt=prompt,
            system_prompt="You are a fair but rigorous evaluator of learning responses. Always return valid JSON.",
        )

        response, _usage = await self.llm.complete(
            operation=AiOperation.ANSWER_EVALUATION,
            messages=messages,
            model=self.model,
            temperature=0.3,
            json_mode=True,
        )
        return self._parse_evaluation(response)

    @staticmethod
    def _parse_evaluation(response: Any) -> AnswerEvaluation:
        if not isinstance(response, dict) or "evaluation" not in response:
            raise LLMError("Answer evaluation returned an invalid result")

        try:
            verdict = AiReviewEvaluation(response["evaluation"])
        except ValueError:
            verdict = AiReviewEvaluation.INCORRECT
        if verdict == AiReviewEvaluation.ERROR:
            verdict = AiReviewEvaluation.INCORRECT

        score = response.get("score")
        if not isinstance(score, (int, float)) or not 0 <= score <= 100:
            score = DEFAULT_SCORES[verdict]

        return AnswerEvaluation(
            evaluation=verdict,
            score=float(score),
            message=str(response.get("message", "")),
        )
