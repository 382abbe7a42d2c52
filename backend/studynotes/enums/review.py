"""
Review System Enums

Defines enums for the SM-2 review loop, review session scopes,
and the AI review pipeline state machine.
"""

from enum import Enum


class Rating(int, Enum):
    """
    Self-assessed recall rating.

    One per feedback button; there is no intermediate grading.
    """

    AGAIN = 1  # Forgot, restart the card
    HARD = 2  # Recalled with significant difficulty
    GOOD = 3  # Recalled with reasonable effort
    EASY = 4  # Recalled effortlessly


class ReviewMode(str, Enum):
    """Question filter applied when a review session starts."""

    DUE = "due"  # Only questions whose next review day has arrived
    ALL = "all"  # Everything in scope regardless of schedule


class ScopeKind(str, Enum):
    """Collection a review session draws its questions from."""

    NOTE = "note"
    FOLDER = "folder"
    USER = "user"


class ReviewPhase(str, Enum):
    """
    Review session states.

    State transitions:
    - IDLE → AWAITING_REVEAL (session started with questions)
    - IDLE → COMPLETED (session started with an empty pool)
    - AWAITING_REVEAL → AWAITING_FEEDBACK (answer shown)
    - AWAITING_FEEDBACK → AWAITING_REVEAL (next question) or COMPLETED
    - any → IDLE (session ended)
    """

    IDLE = "idle"
    AWAITING_REVEAL = "awaiting_reveal"
    AWAITING_FEEDBACK = "awaiting_feedback"
    COMPLETED = "completed"


class NoteStatus(str, Enum):
    """Lifecycle status of a note."""

    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


class AiReviewStatus(str, Enum):
    """
    AI review session states.

    State transitions:
    - PENDING → READY_FOR_REVIEW (questions generated) or FAILED
    - READY_FOR_REVIEW → IN_PROGRESS (user starts answering)
    - IN_PROGRESS → EVALUATING_ANSWERS (answers submitted)
    - EVALUATING_ANSWERS → COMPLETED (scored) or FAILED

    COMPLETED and FAILED are terminal. A failed review is never retried;
    the user requests a new one.
    """

    PENDING = "pending"
    READY_FOR_REVIEW = "ready_for_review"
    IN_PROGRESS = "in_progress"
    EVALUATING_ANSWERS = "evaluating_answers"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AiReviewStatus.COMPLETED, AiReviewStatus.FAILED)


class AiReviewMode(str, Enum):
    """How generated questions are presented."""

    MONO_TEST = "mono_test"  # Single comprehensive test
    SEPARATE_QUESTIONS = "separate_questions"


class AiReviewDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class AiReviewQuestionStatus(str, Enum):
    GENERATED = "generated"
    ANSWERED = "answered"
    SKIPPED = "skipped"
    EVALUATING = "evaluating"
    EVALUATED = "evaluated"


class AiReviewEvaluation(str, Enum):
    CORRECT = "correct"
    PARTIAL = "partial"
    INCORRECT = "incorrect"
    ERROR = "error"


class AiQuestionType(str, Enum):
    """
    AI review question types, grouped by difficulty.

    Easy questions test recall, medium ones test understanding and
    application, hard ones test evaluation and synthesis.
    """

    # Easy
    FACT_BASED = "fact_based"
    DEFINITION = "definition"
    TRUE_FALSE = "true_false"
    FILL_IN_THE_BLANK = "fill_in_the_blank"
    MULTIPLE_CHOICE_BASIC = "multiple_choice_basic"
    FLASHCARD = "flashcard"
    MATCHING = "matching"
    CLOZE_DELETION = "cloze_deletion"

    # Medium
    EXPLAIN_OWN_WORDS = "explain_own_words"
    SCENARIO = "scenario"
    COMPARE_CONTRAST = "compare_contrast"
    CAUSE_EFFECT = "cause_effect"
    CATEGORIZATION = "categorization"
    MULTIPLE_CHOICE_CONCEPTUAL = "multiple_choice_conceptual"
    PROBLEM_SOLVING = "problem_solving"

    # Hard
    JUSTIFY_DEFEND = "justify_defend"
    CRITIQUE_STATEMENT = "critique_statement"
    RANK_PRIORITIZE = "rank_prioritize"
    SUMMARY = "summary"
    CONCEPT_MAP = "concept_map"
    PREDICTION_HYPOTHESIS = "prediction_hypothesis"
