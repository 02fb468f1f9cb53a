from askmate.core.access import can_moderate, get_membership, has_global_role, is_member, is_teacher_of
from askmate.models.classroom import ClassMember, Classroom
from askmate.models.user import User


def _classroom() -> Classroom:
    return Classroom(
        name='Biology',
        class_code='BIO123',
        created_by=1,
        members=[
            ClassMember(user_id=1, role='teacher'),
            ClassMember(user_id=2, role='student'),
        ],
    )


def test_is_member_matches_member_list() -> None:
    classroom = _classroom()

    assert is_member(classroom, 1)
    assert is_member(classroom, 2)
    assert not is_member(classroom, 3)


def test_is_teacher_of_requires_teacher_class_role() -> None:
    classroom = _classroom()

    assert is_teacher_of(classroom, 1)
    assert not is_teacher_of(classroom, 2)
    assert not is_teacher_of(classroom, 3)


def test_class_role_is_independent_of_global_role() -> None:
    classroom = _classroom()
    global_teacher = User(id=2, name='Visiting Teacher', email='visit@school.edu', role='teacher')

    assert has_global_role(global_teacher, ['teacher'])
    assert not is_teacher_of(classroom, global_teacher.id)


def test_has_global_role_checks_allowed_set() -> None:
    student = User(id=5, name='Stu', email='stu@school.edu', role='student')

    assert has_global_role(student, ('student',))
    assert not has_global_role(student, ('teacher', 'admin'))


def test_can_moderate_allows_author_or_class_teacher() -> None:
    classroom = _classroom()

    assert can_moderate(classroom, author_id=2, user_id=2)
    assert can_moderate(classroom, author_id=2, user_id=1)
    assert not can_moderate(classroom, author_id=1, user_id=2)


def test_get_membership_returns_member_role() -> None:
    membership = get_membership(_classroom(), 2)

    assert membership is not None
    assert membership.role == 'student'
