import io
import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from fastapi import UploadFile  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from starlette.datastructures import Headers  # noqa: E402

from askmate.auth.passwords import hash_password  # noqa: E402
from askmate.core import config  # noqa: E402
from askmate.database import Base  # noqa: E402
from askmate.models.answer import Answer  # noqa: E402,F401
from askmate.models.classroom import ClassMember, Classroom  # noqa: E402,F401
from askmate.models.question import Question  # noqa: E402,F401
from askmate.models.user import User  # noqa: E402
from askmate.routes.class_routes import CreateClassRequest, create_class  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db):
    def _make_user(name: str, role: str = 'student', password: str = 'secret123', is_active: bool = True) -> User:
        email = f"{name.lower().replace(' ', '.')}@school.edu"
        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def teacher(make_user) -> User:
    return make_user('Tina Teacher', role='teacher')


@pytest.fixture
def student(make_user) -> User:
    return make_user('Sam Student')


@pytest.fixture
def outsider(make_user) -> User:
    return make_user('Olly Outsider')


@pytest.fixture
def classroom(db, teacher, student) -> Classroom:
    created = create_class(data=CreateClassRequest(name='Algebra I'), current_user=teacher, db=db)
    created.members.append(ClassMember(user_id=student.id, role='student'))
    db.commit()
    db.refresh(created)
    return created


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / 'uploads'
    monkeypatch.setattr(config, 'UPLOAD_DIR', str(target))
    return target


def make_upload(filename: str, content: bytes, content_type: str = 'text/plain') -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({'content-type': content_type}),
    )
