import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from askmate.auth import jwt_handler
from askmate.auth.dependencies import get_current_user
from askmate.auth.passwords import hash_password, verify_password
from askmate.database import database_unavailable, get_db
from askmate.models.user import User
from askmate.routes.schemas import UserResponse

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6
SIGNUP_ROLES = ('student', 'teacher')


def _normalize_name(value: str) -> str:
    normalized = value.strip()
    if not MIN_NAME_LENGTH <= len(normalized) <= MAX_NAME_LENGTH:
        raise ValueError(f'Name must be {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} characters')
    return normalized


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: str = 'student'

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_name(value)

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SIGNUP_ROLES:
            raise ValueError('Role must be student or teacher')
        return normalized


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required')
        return value


class ProfileUpdateRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _normalize_name(value)

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class AuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = 'bearer'
    user: UserResponse


class ClassSummary(BaseModel):
    id: int
    name: str
    description: str | None = None
    class_code: str

    class Config:
        from_attributes = True


class ProfileResponse(UserResponse):
    created_classes: list[ClassSummary] = []
    joined_classes: list[ClassSummary] = []


class MeResponse(BaseModel):
    user: ProfileResponse


def _auth_response(message: str, user: User) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=jwt_handler.create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post('/signup', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    try:
        existing_user = db.query(User).filter(User.email == data.email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='User already exists with this email',
            )

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=data.role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='User already exists with this email',
        ) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    logger.info('Registered user %s with role %s', user.id, user.role)
    return _auth_response('User created successfully', user)


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc

    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials')

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Account is deactivated')

    if not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials')

    return _auth_response('Login successful', user)


@router.get('/me', response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    return MeResponse(
        user=ProfileResponse(
            id=current_user.id,
            name=current_user.name,
            email=current_user.email,
            role=current_user.role,
            created_at=current_user.created_at,
            created_classes=[ClassSummary.model_validate(item) for item in current_user.created_classes],
            joined_classes=[ClassSummary.model_validate(item) for item in current_user.joined_classes],
        )
    )


@router.put('/profile', response_model=UserResponse)
def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        if data.email and data.email != current_user.email:
            taken = db.query(User).filter(User.email == data.email, User.id != current_user.id).first()
            if taken:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email is already taken')
            current_user.email = data.email

        if data.name:
            current_user.name = data.name

        db.commit()
        db.refresh(current_user)
        return current_user
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email is already taken') from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc
