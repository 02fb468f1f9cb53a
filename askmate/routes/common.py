"""Record lookups and access checks used by the class, question and answer routers."""

import math
from pathlib import Path
from typing import TypeVar

from fastapi import HTTPException, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from askmate.core.access import is_member, is_teacher_of
from askmate.core.uploads import find_stored_file
from askmate.models.answer import Answer
from askmate.models.classroom import Classroom
from askmate.models.question import Question
from askmate.models.user import User

ModelT = TypeVar('ModelT', bound=BaseModel)


def get_class_or_404(db: Session, class_id: int) -> Classroom:
    classroom = db.get(Classroom, class_id)
    if classroom is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Class not found')
    return classroom


def require_member(classroom: Classroom, user: User, detail: str = 'Access denied') -> None:
    if not is_member(classroom, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def get_class_for_member(db: Session, class_id: int, user: User) -> Classroom:
    classroom = get_class_or_404(db, class_id)
    require_member(classroom, user, detail='You are not a member of this class')
    return classroom


def get_class_for_teacher(db: Session, class_id: int, user: User) -> Classroom:
    classroom = get_class_or_404(db, class_id)
    if not is_teacher_of(classroom, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Teacher access required')
    return classroom


def get_question_or_404(db: Session, question_id: int) -> Question:
    question = db.get(Question, question_id)
    if question is None or not question.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')
    return question


def get_answer_or_404(db: Session, answer_id: int) -> Answer:
    answer = db.get(Answer, answer_id)
    if answer is None or not answer.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Answer not found')
    return answer


def validate_form(model: type[ModelT], **values) -> ModelT:
    """Validate multipart form fields with a request model, reporting failures as 400."""
    try:
        return model(**values)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                'message': 'Validation failed',
                'errors': exc.errors(include_url=False, include_context=False, include_input=False),
            },
        ) from exc


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


def attachment_response(files: list[dict], filename: str) -> FileResponse:
    metadata = find_stored_file(files, filename)
    if metadata is None or not Path(metadata['path']).is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='File not found')
    return FileResponse(
        metadata['path'],
        media_type=metadata.get('mimetype'),
        filename=metadata.get('original_name') or filename,
    )
