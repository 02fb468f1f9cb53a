"""Membership and role checks over already loaded records.

None of these helpers touch the database; callers load the class (with its
members) first and pass it in.
"""

from __future__ import annotations

from collections.abc import Iterable

from askmate.models.classroom import ClassMember, Classroom
from askmate.models.user import User

CLASS_CREATOR_ROLES = ("teacher", "admin")


def get_membership(classroom: Classroom, user_id: int) -> ClassMember | None:
    for member in classroom.members:
        if member.user_id == user_id:
            return member
    return None


def is_member(classroom: Classroom, user_id: int) -> bool:
    return get_membership(classroom, user_id) is not None


def is_teacher_of(classroom: Classroom, user_id: int) -> bool:
    membership = get_membership(classroom, user_id)
    return membership is not None and membership.role == "teacher"


def has_global_role(user: User, roles: Iterable[str]) -> bool:
    return user.role in set(roles)


def can_moderate(classroom: Classroom, author_id: int, user_id: int) -> bool:
    """True for the content's author or any teacher of the class."""
    return author_id == user_id or is_teacher_of(classroom, user_id)
