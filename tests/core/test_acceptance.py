import pytest

from askmate.core.acceptance import accept_answer
from askmate.models.answer import Answer
from askmate.models.question import Question


@pytest.fixture
def question_with_answers(db, classroom, student, teacher):
    question = Question(
        title='What is a variable?',
        description='Please explain variables in algebra.',
        class_id=classroom.id,
        author_id=student.id,
    )
    db.add(question)
    db.commit()

    answers = [
        Answer(text='A letter standing for a number.', question_id=question.id, author_id=teacher.id),
        Answer(text='An unknown quantity.', question_id=question.id, author_id=student.id),
        Answer(text='Something that can change.', question_id=question.id, author_id=teacher.id),
    ]
    db.add_all(answers)
    db.commit()
    db.refresh(question)
    return question, answers


def test_accept_answer_marks_single_answer_and_resolves_question(db, question_with_answers) -> None:
    question, answers = question_with_answers

    accept_answer(question, answers[0])
    db.commit()
    accept_answer(question, answers[2])
    db.commit()

    assert [answer.is_accepted for answer in answers] == [False, False, True]
    assert question.is_resolved is True


def test_accept_answer_rejects_answer_from_other_question(db, question_with_answers, classroom, student) -> None:
    question, _ = question_with_answers
    other = Question(
        title='Another question',
        description='Something else entirely here.',
        class_id=classroom.id,
        author_id=student.id,
    )
    db.add(other)
    db.commit()
    foreign_answer = Answer(text='Not for you.', question_id=other.id, author_id=student.id)
    db.add(foreign_answer)
    db.commit()

    with pytest.raises(ValueError):
        accept_answer(question, foreign_answer)
