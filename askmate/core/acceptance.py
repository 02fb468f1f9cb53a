"""Accepted-answer bookkeeping."""

from askmate.models.answer import Answer
from askmate.models.question import Question


def accept_answer(question: Question, answer: Answer) -> Answer:
    """Mark ``answer`` as the only accepted answer and resolve ``question``.

    Resolution is one-way: nothing here or elsewhere clears ``is_resolved``.
    """
    if answer.question_id != question.id:
        raise ValueError("Answer does not belong to this question.")

    for sibling in question.answers:
        sibling.is_accepted = False

    answer.is_accepted = True
    question.is_resolved = True
    return answer
