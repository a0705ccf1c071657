import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.enums import AppRole
from app.core.models import Student
from app.core.scope import can_view_student, can_write_subject, resolve_scope, restrict_students


@pytest.mark.asyncio
async def test_teacher_scope_pairs(db_session: AsyncSession, teacher, semester3, dbms) -> None:
    user = CurrentUser(id=teacher["user_id"], role=AppRole.TEACHER)
    scope = await resolve_scope(db_session, user)
    assert str(scope.teacher_id) == teacher["teacher"]["id"]
    assert {str(s) for s in scope.semester_ids} == {semester3["id"]}
    semester_id = next(iter(scope.semester_ids))
    subject_id = next(iter(scope.subject_pairs))[1]
    assert can_write_subject(scope, semester_id, subject_id)
    assert can_write_subject(scope, semester_id, None)


@pytest.mark.asyncio
async def test_user_without_record_gets_empty_scope(db_session: AsyncSession, student) -> None:
    user = CurrentUser(id=student["user_id"], role=AppRole.TEACHER)
    scope = await resolve_scope(db_session, user)
    assert scope.is_empty

    rows = await db_session.execute(restrict_students(select(Student), scope))
    assert rows.scalars().all() == []


@pytest.mark.asyncio
async def test_student_scope_views_self(db_session: AsyncSession, student) -> None:
    user = CurrentUser(id=student["user_id"], role=AppRole.STUDENT)
    scope = await resolve_scope(db_session, user)
    me = await db_session.get(Student, scope.student_id)
    assert can_view_student(scope, me)
    assert not can_write_subject(scope, me.current_semester_id, None)
