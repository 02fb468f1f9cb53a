import pytest
from conftest import make_upload
from fastapi import HTTPException
from pydantic import ValidationError

from askmate.models.answer import Answer
from askmate.models.classroom import ClassMember
from askmate.models.question import Question
from askmate.routes.answer_routes import (
    AnswerTextRequest,
    accept,
    answer_stats,
    create_answer,
    delete_answer,
    download_answer_file,
    list_answers,
    update_answer,
    vote_answer,
)
from askmate.routes.question_routes import QuestionDetailResponse, delete_question, get_question
from askmate.routes.schemas import VoteRequest


@pytest.fixture
def question(db, classroom, student) -> Question:
    asked = Question(
        title='How do I factor this?',
        description='x^2 + 5x + 6 will not factor for me.',
        class_id=classroom.id,
        author_id=student.id,
    )
    db.add(asked)
    db.commit()
    db.refresh(asked)
    return asked


@pytest.fixture
def peer(db, classroom, make_user):
    user = make_user('Pat Peer')
    classroom.members.append(ClassMember(user_id=user.id, role='student'))
    db.commit()
    return user


def _answer(db, user, question, text='Look for two numbers that multiply to 6.', files=None) -> Answer:
    return create_answer(question_id=question.id, text=text, files=files or [], current_user=user, db=db)


def _list(db, user, question, **overrides):
    params = {'page': 1, 'limit': 10, 'sort': 'newest', **overrides}
    return list_answers(question_id=question.id, current_user=user, db=db, **params)


def test_answer_text_request_enforces_length() -> None:
    assert AnswerTextRequest(text='  Try (x+2)(x+3)  ').text == 'Try (x+2)(x+3)'

    with pytest.raises(ValidationError) as exception_info:
        AnswerTextRequest(text='no')

    assert 'Answer must be 5-2000 characters' in str(exception_info.value)


def test_create_answer_by_member(db, question, teacher) -> None:
    answer = _answer(db, teacher, question)

    assert answer.question_id == question.id
    assert answer.author_id == teacher.id
    assert answer.is_accepted is False
    assert answer.vote_count == 0


def test_create_answer_stores_attachments(db, question, teacher, upload_dir) -> None:
    answer = _answer(db, teacher, question, files=[make_upload('solution.txt', b'(x+2)(x+3)')])

    stored = answer.files[0]
    response = download_answer_file(answer_id=answer.id, filename=stored['filename'], current_user=teacher, db=db)

    assert stored['original_name'] == 'solution.txt'
    assert response.path == stored['path']


def test_create_answer_requires_membership(db, question, outsider) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _answer(db, outsider, question)

    assert exception_info.value.status_code == 403


def test_create_answer_rejects_short_text(db, question, teacher) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _answer(db, teacher, question, text='ok')

    assert exception_info.value.status_code == 400


def test_create_answer_on_deleted_question_is_not_found(db, question, teacher, student) -> None:
    delete_question(question_id=question.id, current_user=student, db=db)

    with pytest.raises(HTTPException) as exception_info:
        _answer(db, teacher, question)

    assert exception_info.value.status_code == 404


def test_list_answers_sorts_and_paginates(db, question, teacher, student, peer) -> None:
    first = _answer(db, teacher, question, text='First answer here')
    second = _answer(db, peer, question, text='Second answer here')
    vote_answer(answer_id=first.id, data=VoteRequest(type='upvote'), current_user=student, db=db)

    newest = _list(db, student, question)
    oldest = _list(db, student, question, sort='oldest')
    most_voted = _list(db, student, question, sort='mostVoted')
    paged = _list(db, student, question, sort='oldest', limit=1, page=2)

    assert [answer.id for answer in newest.answers] == [second.id, first.id]
    assert [answer.id for answer in oldest.answers] == [first.id, second.id]
    assert most_voted.answers[0].id == first.id
    assert [answer.id for answer in paged.answers] == [second.id]
    assert paged.total_pages == 2


def test_list_answers_requires_membership(db, question, outsider) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _list(db, outsider, question)

    assert exception_info.value.status_code == 403


def test_update_answer_permissions(db, question, teacher, peer) -> None:
    answer = _answer(db, peer, question)

    with pytest.raises(HTTPException) as exception_info:
        update_answer(
            answer_id=answer.id,
            data=AnswerTextRequest(text='Hijacked answer'),
            current_user=question.author,
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Not authorized to edit this answer'

    updated = update_answer(
        answer_id=answer.id,
        data=AnswerTextRequest(text='Edited by the teacher'),
        current_user=teacher,
        db=db,
    )
    assert updated.text == 'Edited by the teacher'


def test_vote_answer_replaces_previous_vote(db, question, teacher, student) -> None:
    answer = _answer(db, teacher, question)

    vote_answer(answer_id=answer.id, data=VoteRequest(type='downvote'), current_user=student, db=db)
    response = vote_answer(answer_id=answer.id, data=VoteRequest(type='upvote'), current_user=student, db=db)

    assert response.upvotes == [student.id]
    assert response.downvotes == []
    assert response.vote_count == 1


def test_accept_keeps_a_single_accepted_answer(db, question, teacher, student, peer) -> None:
    first = _answer(db, teacher, question, text='First answer here')
    second = _answer(db, peer, question, text='Second answer here')

    accept(answer_id=first.id, current_user=student, db=db)
    accept(answer_id=second.id, current_user=student, db=db)

    db.refresh(question)
    accepted = [answer.id for answer in question.answers if answer.is_accepted]
    assert accepted == [second.id]
    assert question.is_resolved is True


def test_accept_allowed_for_class_teacher(db, question, teacher, peer) -> None:
    answer = _answer(db, peer, question)

    accepted = accept(answer_id=answer.id, current_user=teacher, db=db)

    assert accepted.is_accepted is True


def test_accept_rejects_other_students(db, question, teacher, peer) -> None:
    answer = _answer(db, teacher, question)

    with pytest.raises(HTTPException) as exception_info:
        accept(answer_id=answer.id, current_user=peer, db=db)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Not authorized to accept this answer'


def test_deleting_accepted_answer_leaves_question_resolved(db, question, teacher, student) -> None:
    answer = _answer(db, teacher, question)
    accept(answer_id=answer.id, current_user=student, db=db)

    delete_answer(answer_id=answer.id, current_user=teacher, db=db)

    detail = QuestionDetailResponse.model_validate(get_question(question_id=question.id, current_user=student, db=db))
    assert detail.is_resolved is True
    assert detail.answers == []
    assert detail.answer_count == 0
    assert _list(db, student, question).total == 0


def test_delete_answer_rejects_other_students(db, question, teacher, peer) -> None:
    answer = _answer(db, teacher, question)

    with pytest.raises(HTTPException) as exception_info:
        delete_answer(answer_id=answer.id, current_user=peer, db=db)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Not authorized to delete this answer'


def test_deleted_answer_is_not_found(db, question, teacher) -> None:
    answer = _answer(db, teacher, question)
    delete_answer(answer_id=answer.id, current_user=teacher, db=db)

    with pytest.raises(HTTPException) as exception_info:
        vote_answer(answer_id=answer.id, data=VoteRequest(type='upvote'), current_user=teacher, db=db)

    assert exception_info.value.status_code == 404


def test_answer_stats_counts_active_answers(db, question, teacher) -> None:
    _answer(db, teacher, question, text='First answer here')
    removed = _answer(db, teacher, question, text='Second answer here')
    delete_answer(answer_id=removed.id, current_user=teacher, db=db)

    assert answer_stats(current_user=teacher, db=db).count == 1
