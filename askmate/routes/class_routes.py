import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from askmate.auth.dependencies import get_current_user
from askmate.core import config
from askmate.core.access import CLASS_CREATOR_ROLES, get_membership, has_global_role, is_member
from askmate.core.class_codes import allocate_class_code, is_valid_class_code, normalize_class_code
from askmate.core.exceptions import ClassCodeAllocationError
from askmate.database import database_unavailable, get_db
from askmate.models.classroom import ClassMember, Classroom, default_class_settings
from askmate.models.user import User
from askmate.routes.common import get_class_for_member, get_class_for_teacher, get_class_or_404
from askmate.routes.schemas import UserSummary

router = APIRouter(tags=['classes'])

logger = logging.getLogger(__name__)

MIN_CLASS_NAME_LENGTH = 3
MAX_CLASS_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_FILE_SIZE_LIMIT = 50 * 1024 * 1024


def _normalize_class_name(value: str) -> str:
    normalized = value.strip()
    if not MIN_CLASS_NAME_LENGTH <= len(normalized) <= MAX_CLASS_NAME_LENGTH:
        raise ValueError(f'Class name must be {MIN_CLASS_NAME_LENGTH}-{MAX_CLASS_NAME_LENGTH} characters')
    return normalized


def _normalize_description(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if len(normalized) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f'Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters')
    return normalized


class CreateClassRequest(BaseModel):
    name: str
    description: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_class_name(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value) or None


class JoinClassRequest(BaseModel):
    class_code: str

    @field_validator('class_code')
    @classmethod
    def validate_class_code(cls, value: str) -> str:
        normalized = normalize_class_code(value)
        if len(normalized) != config.CLASS_CODE_LENGTH:
            raise ValueError(f'Class code must be exactly {config.CLASS_CODE_LENGTH} characters')
        if not is_valid_class_code(normalized):
            raise ValueError('Class code may only contain letters and digits')
        return normalized


class ClassSettingsUpdate(BaseModel):
    allow_student_questions: bool | None = None
    allow_file_uploads: bool | None = None
    max_file_size: int | None = None
    allowed_file_types: list[str] | None = None

    @field_validator('max_file_size')
    @classmethod
    def validate_max_file_size(cls, value: int | None) -> int | None:
        if value is not None and not 0 < value <= MAX_FILE_SIZE_LIMIT:
            raise ValueError(f'Max file size must be between 1 byte and {MAX_FILE_SIZE_LIMIT} bytes')
        return value

    @field_validator('allowed_file_types')
    @classmethod
    def validate_allowed_file_types(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        normalized = [item.strip().lower() for item in value if item.strip()]
        if any('/' not in item for item in normalized):
            raise ValueError('Allowed file types must be MIME types such as image/png')
        return normalized


class UpdateClassRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    settings: ClassSettingsUpdate | None = None
    is_active: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _normalize_class_name(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return _normalize_description(value)


class ClassSettingsResponse(BaseModel):
    allow_student_questions: bool
    allow_file_uploads: bool
    max_file_size: int
    allowed_file_types: list[str]


class MemberResponse(BaseModel):
    user: UserSummary
    role: str
    joined_at: datetime | None = None

    class Config:
        from_attributes = True


class ClassResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    class_code: str
    created_by: int
    creator: UserSummary
    settings: ClassSettingsResponse
    is_active: bool
    created_at: datetime | None = None
    members: list[MemberResponse]

    class Config:
        from_attributes = True


class ClassListItem(BaseModel):
    id: int
    name: str
    description: str | None = None
    class_code: str
    creator: UserSummary
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MyClassesResponse(BaseModel):
    joined_classes: list[ClassListItem]
    created_classes: list[ClassListItem]


def insert_class_with_unique_code(db: Session, data: CreateClassRequest, creator: User) -> Classroom:
    """Persist a new class with a fresh join code and its creator as teacher.

    The unique index on ``class_code`` is the final arbiter: a commit that
    collides is rolled back and counted as one more allocation attempt.
    """
    creator_id = creator.id
    created: list[Classroom] = []

    def try_claim(code: str) -> bool:
        if db.query(Classroom.id).filter(Classroom.class_code == code).first() is not None:
            return False

        classroom = Classroom(
            name=data.name,
            description=data.description,
            class_code=code,
            created_by=creator_id,
            settings=default_class_settings(),
            is_active=True,
        )
        classroom.members.append(ClassMember(user_id=creator_id, role='teacher'))
        db.add(classroom)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return False

        created.append(classroom)
        return True

    allocate_class_code(try_claim, max_attempts=config.CLASS_CODE_MAX_ATTEMPTS)
    classroom = created[0]
    db.refresh(classroom)
    return classroom


@router.post('/create', response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    data: CreateClassRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not has_global_role(current_user, CLASS_CREATOR_ROLES):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only teachers and admins can create classes.',
        )

    try:
        classroom = insert_class_with_unique_code(db, data, current_user)
    except ClassCodeAllocationError as exc:
        logger.error('Class code allocation exhausted for user %s', current_user.id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s created class %s (%s)', classroom.created_by, classroom.id, classroom.class_code)
    return classroom


@router.post('/join', response_model=ClassResponse)
def join_class(
    data: JoinClassRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        classroom = db.query(Classroom).filter(Classroom.class_code == data.class_code).first()
        if classroom is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Class not found with this code')

        if not classroom.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='This class is no longer active')

        if is_member(classroom, current_user.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='You are already a member of this class',
            )

        classroom.members.append(ClassMember(user_id=current_user.id, role='student'))
        db.commit()
        db.refresh(classroom)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='You are already a member of this class',
        ) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s joined class %s', current_user.id, classroom.id)
    return classroom


@router.get('/', response_model=MyClassesResponse)
def list_my_classes(current_user: User = Depends(get_current_user)):
    return MyClassesResponse(
        joined_classes=[ClassListItem.model_validate(item) for item in current_user.joined_classes],
        created_classes=[ClassListItem.model_validate(item) for item in current_user.created_classes],
    )


@router.get('/{class_id}', response_model=ClassResponse)
def get_class(
    class_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_class_for_member(db, class_id, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.put('/{class_id}', response_model=ClassResponse)
def update_class(
    class_id: int,
    data: UpdateClassRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        classroom = get_class_for_teacher(db, class_id, current_user)

        if data.name:
            classroom.name = data.name
        if data.description is not None:
            classroom.description = data.description or None
        if data.settings is not None:
            changes = data.settings.model_dump(exclude_none=True)
            classroom.settings = {**(classroom.settings or default_class_settings()), **changes}
        if data.is_active is not None:
            classroom.is_active = data.is_active

        db.commit()
        db.refresh(classroom)
        return classroom
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.delete('/{class_id}/members/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    class_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        classroom = get_class_for_teacher(db, class_id, current_user)

        if classroom.created_by == user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Cannot remove class creator')

        membership = get_membership(classroom, user_id)
        if membership is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='User is not a member of this class',
            )

        db.delete(membership)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s removed user %s from class %s', current_user.id, user_id, class_id)


@router.delete('/{class_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_class(
    class_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        classroom = get_class_or_404(db, class_id)

        if classroom.created_by != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only class creator can delete the class',
            )

        db.delete(classroom)
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('User %s deleted class %s', current_user.id, class_id)
