import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from askmate.auth.dependencies import get_current_user
from askmate.core.acceptance import accept_answer
from askmate.core.access import can_moderate, is_teacher_of
from askmate.core.exceptions import UploadRejected
from askmate.core.uploads import discard_uploads, store_uploads
from askmate.core.votes import apply_vote
from askmate.database import database_unavailable, get_db
from askmate.models.answer import Answer
from askmate.models.user import User
from askmate.routes.common import (
    attachment_response,
    get_answer_or_404,
    get_question_or_404,
    require_member,
    total_pages,
    validate_form,
)
from askmate.routes.schemas import FileMetadataResponse, UserSummary, VoteRequest, VoteResponse

router = APIRouter(tags=['answers'])

logger = logging.getLogger(__name__)

MIN_ANSWER_LENGTH = 5
MAX_ANSWER_LENGTH = 2000
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class AnswerTextRequest(BaseModel):
    text: str

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if not MIN_ANSWER_LENGTH <= len(normalized) <= MAX_ANSWER_LENGTH:
            raise ValueError(f'Answer must be {MIN_ANSWER_LENGTH}-{MAX_ANSWER_LENGTH} characters')
        return normalized


class AnswerResponse(BaseModel):
    id: int
    text: str
    question_id: int
    author: UserSummary
    files: list[FileMetadataResponse]
    upvotes: list[int]
    downvotes: list[int]
    vote_count: int
    is_accepted: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class AnswerListResponse(BaseModel):
    answers: list[AnswerResponse]
    total: int
    total_pages: int
    current_page: int


class AnswerStatsResponse(BaseModel):
    count: int


def _answer_context(db: Session, answer_id: int):
    answer = get_answer_or_404(db, answer_id)
    question = answer.question
    if question is None or not question.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')
    return answer, question


@router.get('/user/stats', response_model=AnswerStatsResponse)
def answer_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        count = db.query(Answer).filter(
            Answer.author_id == current_user.id,
            Answer.is_active.is_(True),
        ).count()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return AnswerStatsResponse(count=count)


@router.get('/question/{question_id}', response_model=AnswerListResponse)
def list_answers(
    question_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: Literal['newest', 'oldest', 'mostVoted'] = Query(default='newest'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        require_member(question.classroom, current_user)

        query = db.query(Answer).filter(Answer.question_id == question_id, Answer.is_active.is_(True))
        total = query.count()
        offset = (page - 1) * limit

        if sort == 'oldest':
            answers = query.order_by(Answer.created_at.asc(), Answer.id.asc()).offset(offset).limit(limit).all()
        elif sort == 'mostVoted':
            answers = sorted(
                query.all(),
                key=lambda answer: (answer.vote_count, answer.created_at, answer.id),
                reverse=True,
            )[offset:offset + limit]
        else:
            answers = query.order_by(Answer.created_at.desc(), Answer.id.desc()).offset(offset).limit(limit).all()

        return AnswerListResponse(
            answers=[AnswerResponse.model_validate(answer) for answer in answers],
            total=total,
            total_pages=total_pages(total, limit),
            current_page=page,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/question/{question_id}', response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
def create_answer(
    question_id: int,
    text: str = Form(...),
    files: list[UploadFile] = File(default=[]),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = validate_form(AnswerTextRequest, text=text)

    try:
        question = get_question_or_404(db, question_id)
        classroom = question.classroom
        require_member(classroom, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    try:
        stored_files = store_uploads(files, classroom.settings or {})
    except UploadRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        answer = Answer(
            text=data.text,
            question_id=question.id,
            author_id=current_user.id,
            files=stored_files,
            upvotes=[],
            downvotes=[],
        )
        db.add(answer)
        db.commit()
        db.refresh(answer)
    except SQLAlchemyError as exc:
        discard_uploads(stored_files)
        raise database_unavailable(db, exc) from exc

    logger.info('User %s answered question %s', current_user.id, question.id)
    return answer


@router.put('/{answer_id}', response_model=AnswerResponse)
def update_answer(
    answer_id: int,
    data: AnswerTextRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        answer, question = _answer_context(db, answer_id)
        if not can_moderate(question.classroom, answer.author_id, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to edit this answer',
            )

        answer.text = data.text
        db.commit()
        db.refresh(answer)
        return answer
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/{answer_id}/vote', response_model=VoteResponse)
def vote_answer(
    answer_id: int,
    data: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        answer, question = _answer_context(db, answer_id)
        require_member(question.classroom, current_user)

        answer.upvotes, answer.downvotes = apply_vote(
            answer.upvotes or [],
            answer.downvotes or [],
            current_user.id,
            data.type,
        )
        db.commit()
        db.refresh(answer)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return VoteResponse(
        message='Vote updated successfully',
        vote_count=answer.vote_count,
        upvotes=answer.upvotes,
        downvotes=answer.downvotes,
    )


@router.post('/{answer_id}/accept', response_model=AnswerResponse)
def accept(
    answer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        answer, question = _answer_context(db, answer_id)
        is_question_author = question.author_id == current_user.id
        if not is_question_author and not is_teacher_of(question.classroom, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to accept this answer',
            )

        accept_answer(question, answer)
        db.commit()
        db.refresh(answer)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s accepted answer %s on question %s', current_user.id, answer.id, question.id)
    return answer


@router.delete('/{answer_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_answer(
    answer_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        answer, question = _answer_context(db, answer_id)
        if not can_moderate(question.classroom, answer.author_id, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to delete this answer',
            )

        # The question keeps its resolved flag even if this was the accepted answer.
        answer.is_active = False
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s deleted answer %s', current_user.id, answer_id)


@router.get('/{answer_id}/files/{filename}')
def download_answer_file(
    answer_id: int,
    filename: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        answer, question = _answer_context(db, answer_id)
        require_member(question.classroom, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return attachment_response(answer.files, filename)
