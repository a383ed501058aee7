"""
Quiz scoring for the lecture detail screen.

A QuizAttempt holds the option the user picked per question. Submitting
scores it; retaking clears every selection so the next submission starts
from nothing.
"""

from typing import Dict, List, Optional, Sequence

from app.exceptions import ValidationError
from app.schemas.lecture import QuizAnswerResult, QuizQuestion, QuizResult

PERFECT_MESSAGE = "Perfect score! You're a genius."
RETRY_MESSAGE = "Great effort! Review the notes and try again."


def is_correct(question: QuizQuestion, selected: Optional[int]) -> bool:
    """An out-of-range correctAnswer can never be matched."""
    if selected is None:
        return False
    if not 0 <= question.correct_answer < len(question.options):
        return False
    return selected == question.correct_answer


def score_quiz(quiz: Sequence[QuizQuestion], selections: Dict[int, int]) -> int:
    return sum(1 for index, question in enumerate(quiz) if is_correct(question, selections.get(index)))


class QuizAttempt:
    """In-memory answer state for one pass over a lecture's quiz."""

    def __init__(self, quiz: Sequence[QuizQuestion]):
        self.quiz: List[QuizQuestion] = list(quiz)
        self.selections: Dict[int, int] = {}
        self.submitted = False

    def select(self, question_index: int, option_index: int) -> None:
        if self.submitted:
            raise ValidationError(
                message="This attempt was already submitted. Retake the quiz to answer again.",
                field="answers",
            )
        if not 0 <= question_index < len(self.quiz):
            raise ValidationError(
                message=f"Question {question_index + 1} does not exist.",
                field="answers",
                context={"question_index": question_index, "question_count": len(self.quiz)},
            )
        option_count = len(self.quiz[question_index].options)
        if not 0 <= option_index < option_count:
            raise ValidationError(
                message=f"Question {question_index + 1} has no option {option_index + 1}.",
                field="answers",
                context={"question_index": question_index, "option_index": option_index},
            )
        self.selections[question_index] = option_index

    @property
    def score(self) -> int:
        return score_quiz(self.quiz, self.selections)

    def submit(self) -> QuizResult:
        self.submitted = True
        total = len(self.quiz)
        score = self.score
        perfect = total > 0 and score == total
        return QuizResult(
            score=score,
            total=total,
            perfect=perfect,
            message=PERFECT_MESSAGE if perfect else RETRY_MESSAGE,
            results=[
                QuizAnswerResult(
                    question_index=index,
                    selected=self.selections.get(index),
                    correct_answer=question.correct_answer,
                    is_correct=is_correct(question, self.selections.get(index)),
                )
                for index, question in enumerate(self.quiz)
            ],
        )

    def retake(self) -> None:
        self.selections.clear()
        self.submitted = False
