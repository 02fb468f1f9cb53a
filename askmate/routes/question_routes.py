import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from askmate.auth.dependencies import get_current_user
from askmate.core.access import can_moderate, is_teacher_of
from askmate.core.exceptions import UploadRejected
from askmate.core.uploads import discard_uploads, store_uploads
from askmate.core.votes import apply_vote
from askmate.database import database_unavailable, get_db
from askmate.models.question import Question
from askmate.models.user import User
from askmate.routes.common import (
    attachment_response,
    get_class_for_member,
    get_class_for_teacher,
    get_question_or_404,
    require_member,
    total_pages,
    validate_form,
)
from askmate.routes.schemas import FileMetadataResponse, UserSummary, VoteRequest, VoteResponse

router = APIRouter(tags=['questions'])

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 5
MAX_TITLE_LENGTH = 200
MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 2000
MAX_TAG_LENGTH = 20
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _normalize_title(value: str) -> str:
    normalized = value.strip()
    if not MIN_TITLE_LENGTH <= len(normalized) <= MAX_TITLE_LENGTH:
        raise ValueError(f'Title must be {MIN_TITLE_LENGTH}-{MAX_TITLE_LENGTH} characters')
    return normalized


def _normalize_description(value: str) -> str:
    normalized = value.strip()
    if not MIN_DESCRIPTION_LENGTH <= len(normalized) <= MAX_DESCRIPTION_LENGTH:
        raise ValueError(
            f'Description must be {MIN_DESCRIPTION_LENGTH}-{MAX_DESCRIPTION_LENGTH} characters'
        )
    return normalized


def normalize_tags(values: list[str]) -> list[str]:
    """Split comma separated entries, drop blanks and duplicates, keep order."""
    tags: list[str] = []
    for value in values:
        for tag in value.split(','):
            tag = tag.strip()
            if not tag or tag in tags:
                continue
            if len(tag) > MAX_TAG_LENGTH:
                raise ValueError(f'Tag cannot exceed {MAX_TAG_LENGTH} characters')
            tags.append(tag)
    return tags


class CreateQuestionRequest(BaseModel):
    title: str
    description: str
    tags: list[str] = []

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str) -> str:
        return _normalize_description(value)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)


class UpdateQuestionRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _normalize_description(value)

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return normalize_tags(value)


class PinQuestionRequest(BaseModel):
    is_pinned: bool


class AnswerInQuestionResponse(BaseModel):
    id: int
    text: str
    author: UserSummary
    files: list[FileMetadataResponse]
    vote_count: int
    is_accepted: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: int
    title: str
    description: str
    tags: list[str]
    class_id: int
    author: UserSummary
    files: list[FileMetadataResponse]
    upvotes: list[int]
    downvotes: list[int]
    vote_count: int
    answer_count: int
    is_resolved: bool
    is_pinned: bool
    views: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class QuestionDetailResponse(QuestionResponse):
    answers: list[AnswerInQuestionResponse] = Field(default=[], validation_alias='active_answers')


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    total: int
    total_pages: int
    current_page: int


def _sort_key(sort: str):
    if sort == 'mostVoted':
        return lambda question: (question.vote_count, question.created_at, question.id)
    if sort == 'mostAnswered':
        return lambda question: (question.answer_count, question.created_at, question.id)
    return lambda question: (question.created_at, question.id)


def _search_term(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip().casefold()


def _has_tag_like(question: Question, term: str) -> bool:
    return any(term in tag.casefold() for tag in question.tags or [])


def _matches(question: Question, search: str | None, tag: str | None) -> bool:
    """Case-insensitive literal substring match on the stored values, not on their JSON encoding."""
    if search is not None and not (
        search in question.title.casefold()
        or search in question.description.casefold()
        or _has_tag_like(question, search)
    ):
        return False
    return tag is None or _has_tag_like(question, tag)


@router.get('/class/{class_id}', response_model=QuestionListResponse)
def list_class_questions(
    class_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: str | None = Query(default=None),
    tag: str | None = Query(default=None),
    sort: Literal['newest', 'oldest', 'mostVoted', 'mostAnswered'] = Query(default='newest'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        get_class_for_member(db, class_id, current_user)

        query = db.query(Question).filter(Question.class_id == class_id, Question.is_active.is_(True))

        search_term = _search_term(search)
        tag_term = _search_term(tag)
        offset = (page - 1) * limit

        if search_term is None and tag_term is None and sort in ('newest', 'oldest'):
            total = query.count()
            if sort == 'newest':
                query = query.order_by(Question.created_at.desc(), Question.id.desc())
            else:
                query = query.order_by(Question.created_at.asc(), Question.id.asc())
            questions = query.offset(offset).limit(limit).all()
        else:
            # Tags live in a JSON column, so matching happens on the decoded lists.
            matched = [question for question in query.all() if _matches(question, search_term, tag_term)]
            total = len(matched)
            questions = sorted(matched, key=_sort_key(sort), reverse=sort != 'oldest')[offset:offset + limit]

        return QuestionListResponse(
            questions=[QuestionResponse.model_validate(question) for question in questions],
            total=total,
            total_pages=total_pages(total, limit),
            current_page=page,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.get('/{question_id}', response_model=QuestionDetailResponse)
def get_question(
    question_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        require_member(question.classroom, current_user)

        question.views = (question.views or 0) + 1
        db.commit()
        db.refresh(question)
        return question
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/class/{class_id}', response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(
    class_id: int,
    title: str = Form(...),
    description: str = Form(...),
    tags: list[str] = Form(default=[]),
    files: list[UploadFile] = File(default=[]),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = validate_form(CreateQuestionRequest, title=title, description=description, tags=tags)

    try:
        classroom = get_class_for_member(db, class_id, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    settings = classroom.settings or {}
    if not settings.get('allow_student_questions', True) and not is_teacher_of(classroom, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only teachers can post questions in this class.',
        )

    try:
        stored_files = store_uploads(files, settings)
    except UploadRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        question = Question(
            title=data.title,
            description=data.description,
            tags=data.tags,
            class_id=classroom.id,
            author_id=current_user.id,
            files=stored_files,
            upvotes=[],
            downvotes=[],
        )
        db.add(question)
        db.commit()
        db.refresh(question)
    except SQLAlchemyError as exc:
        discard_uploads(stored_files)
        raise database_unavailable(db, exc) from exc

    logger.info('User %s asked question %s in class %s', current_user.id, question.id, classroom.id)
    return question


@router.put('/{question_id}', response_model=QuestionResponse)
def update_question(
    question_id: int,
    data: UpdateQuestionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        if not can_moderate(question.classroom, question.author_id, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to edit this question',
            )

        if data.title:
            question.title = data.title
        if data.description:
            question.description = data.description
        if data.tags is not None:
            question.tags = data.tags

        db.commit()
        db.refresh(question)
        return question
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/{question_id}/vote', response_model=VoteResponse)
def vote_question(
    question_id: int,
    data: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        require_member(question.classroom, current_user)

        question.upvotes, question.downvotes = apply_vote(
            question.upvotes or [],
            question.downvotes or [],
            current_user.id,
            data.type,
        )
        db.commit()
        db.refresh(question)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return VoteResponse(
        message='Vote updated successfully',
        vote_count=question.vote_count,
        upvotes=question.upvotes,
        downvotes=question.downvotes,
    )


@router.post('/{question_id}/pin', response_model=QuestionResponse)
def pin_question(
    question_id: int,
    data: PinQuestionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        get_class_for_teacher(db, question.class_id, current_user)

        question.is_pinned = data.is_pinned
        db.commit()
        db.refresh(question)
        return question
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.delete('/{question_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    question_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        if not can_moderate(question.classroom, question.author_id, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Not authorized to delete this question',
            )

        question.is_active = False
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s deleted question %s', current_user.id, question_id)


@router.get('/{question_id}/files/{filename}')
def download_question_file(
    question_id: int,
    filename: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        question = get_question_or_404(db, question_id)
        require_member(question.classroom, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    return attachment_response(question.files, filename)
