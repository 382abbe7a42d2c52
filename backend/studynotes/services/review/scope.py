"""
Review scope resolution.

A scope is a tagged value, ``ReviewScope(kind, id)``, naming a note, a
folder or a user. ``resolve_scope`` is the single place that turns a scope
into a normalized question pool:

- note:   questions of that note
- folder: questions of every non-archived note in the folder
- user:   questions of every note the user owns

The pool keeps repository order and holds each question id once.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Union

from studynotes.enums.review import ScopeKind
from studynotes.models.ai_review import AiReviewSession
from studynotes.models.review import Question

if TYPE_CHECKING:
    from studynotes.services.review.repository import ReviewRepository


@dataclass(frozen=True)
class ReviewScope:
    kind: ScopeKind
    id: str

    @classmethod
    def of(cls, kind: Union[ScopeKind, str], scope_id: str) -> "ReviewScope":
        return cls(kind=ScopeKind(kind), id=scope_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


def _question_loader(
    repository: "ReviewRepository", kind: ScopeKind
) -> Callable[[str], Awaitable[list[Question]]]:
    loaders = {
        ScopeKind.NOTE: repository.list_questions_by_note,
        ScopeKind.FOLDER: repository.list_questions_by_folder,
        ScopeKind.USER: repository.list_questions_by_user,
    }
    return loaders[kind]


def dedupe_questions(questions: list[Question]) -> list[Question]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    pool = []
    for question in questions:
        if question.id in seen:
            continue
        seen.add(question.id)
        pool.append(question)
    return pool


async def resolve_scope(
    scope: ReviewScope, repository: "ReviewRepository"
) -> list[Question]:
    """
    Resolve a scope into its question pool.

    Args:
        scope: Note, folder or user scope
        repository: Question lookup collaborator

    Returns:
        Questions in repository order, unique by id.
    """
    questions = await _question_loader(repository, scope.kind)(scope.id)
    return dedupe_questions(questions)


async def resolve_ai_sessions(
    scope: ReviewScope, repository: "ReviewRepository"
) -> list[AiReviewSession]:
    """AI review sessions that count towards a scope's statistics."""
    if scope.kind == ScopeKind.USER:
        return await repository.list_ai_sessions(user_id=scope.id)
    return await repository.list_ai_sessions(source_id=scope.id)
