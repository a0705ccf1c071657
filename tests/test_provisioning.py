import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.config import settings
from app.core.models import Student, Teacher, TeacherSemesterAssignment

MISSING_ID = "00000000-0000-0000-0000-000000000000"


@pytest.mark.asyncio
async def test_provision_teacher_fresh(teacher, dbms) -> None:
    assert teacher["success"] is True
    assert teacher["message"] == "Teacher created successfully"
    assert teacher["reactivated"] is False
    assert teacher["default_credential"] == settings.default_password
    assert teacher["profile"]["must_change_password"] is True
    assert teacher["teacher"]["employee_id"] == "EMP001"
    assignments = teacher["teacher"]["semester_assignments"]
    assert len(assignments) == 1
    assert assignments[0]["subject_id"] == dbms["id"]
    assert assignments[0]["subject_name"] == "DBMS"


@pytest.mark.asyncio
async def test_provisioned_user_must_change_password(client: AsyncClient, teacher) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "teacher@bca.edu", "password": settings.default_password},
    )
    assert response.json()["must_change_password"] is True
    assert response.json()["role"] == "teacher"


@pytest.mark.asyncio
async def test_non_admin_cannot_provision(provision_user, student) -> None:
    response = await provision_user(
        headers=student["headers"],
        email="x@bca.edu",
        full_name="X",
        role="teacher",
        employee_id="EMP999",
    )
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Unauthorized: Only admins can create users"}


@pytest.mark.asyncio
async def test_teacher_requires_employee_id(provision_user) -> None:
    response = await provision_user(email="x@bca.edu", full_name="X", role="teacher")
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"] == "Employee ID is required for teachers"


@pytest.mark.asyncio
async def test_student_requires_enrollment_fields(provision_user, bca) -> None:
    response = await provision_user(email="s@bca.edu", full_name="S", role="student", course_id=bca["id"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_student_semester_must_belong_to_course(provision_user, client: AsyncClient, admin_headers, bca) -> None:
    mca = await client.post(
        "/api/v1/courses",
        json={"name": "MCA", "code": "MCA", "duration_years": 2, "total_semesters": 4},
        headers=admin_headers,
    )
    response = await provision_user(
        email="s@bca.edu",
        full_name="S",
        role="student",
        roll_number="R1",
        course_id=mca.json()["id"],
        current_semester_id=bca["semesters"][1]["id"],
        enrollment_year=2024,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Semester does not belong to the selected course"


@pytest.mark.asyncio
async def test_active_email_is_already_exists(provision_user, teacher) -> None:
    response = await provision_user(
        email="teacher@bca.edu", full_name="Again", role="teacher", employee_id="EMP002"
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_email_with_other_role_is_already_exists(provision_user) -> None:
    response = await provision_user(
        email=settings.admin_email, full_name="Admin as teacher", role="teacher", employee_id="EMP010"
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_active_employee_id_is_duplicate(provision_user, teacher, db_session: AsyncSession) -> None:
    response = await provision_user(
        email="other@bca.edu", full_name="Other", role="teacher", employee_id="EMP001"
    )
    assert response.status_code == 409
    users = await db_session.execute(select(func.count(User.id)).where(User.email == "other@bca.edu"))
    assert users.scalar_one() == 0


@pytest.mark.asyncio
async def test_reprovisioning_deactivated_teacher_reactivates(
    client: AsyncClient, admin_headers, provision_user, teacher, db_session: AsyncSession
) -> None:
    teacher_id = teacher["teacher"]["id"]
    response = await client.delete(f"/api/v1/teachers/{teacher_id}", headers=admin_headers)
    assert response.status_code == 200

    response = await provision_user(
        email="teacher@bca.edu",
        full_name="Tara T. Teacher",
        role="teacher",
        employee_id="EMP001",
        designation="Professor",
    )
    assert response.status_code == 200
    data = response.json()
    assert data["reactivated"] is True
    assert data["default_credential"] is None
    assert data["teacher"]["id"] == teacher_id
    assert data["teacher"]["designation"] == "Professor"
    assert data["profile"]["full_name"] == "Tara T. Teacher"

    count = await db_session.execute(select(func.count(Teacher.id)))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_deactivated_student_reactivated_by_roll_and_course(
    client: AsyncClient, admin_headers, provision_user, student, bca, semester3, db_session: AsyncSession
) -> None:
    await client.delete(f"/api/v1/students/{student['student']['id']}", headers=admin_headers)

    response = await provision_user(
        email="sam.new@bca.edu",
        full_name="Sam Student",
        role="student",
        roll_number="BCA-001",
        course_id=bca["id"],
        current_semester_id=semester3["id"],
        enrollment_year=2023,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["reactivated"] is True
    assert data["student"]["id"] == student["student"]["id"]
    assert data["profile"]["email"] == "sam.new@bca.edu"

    count = await db_session.execute(select(func.count(Student.id)))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_invalid_semester_assignment_is_skipped(provision_user, semester3, db_session: AsyncSession) -> None:
    response = await provision_user(
        email="new.teacher@bca.edu",
        full_name="New Teacher",
        role="teacher",
        employee_id="EMP050",
        semester_assignments=[
            {"semester_id": MISSING_ID, "subject_name": "Ghost"},
            {"semester_id": semester3["id"], "subject_name": "Lab"},
        ],
    )
    assert response.status_code == 200
    assignments = response.json()["teacher"]["semester_assignments"]
    assert [a["subject_name"] for a in assignments] == ["Lab"]

    count = await db_session.execute(select(func.count(TeacherSemesterAssignment.id)))
    assert count.scalar_one() == 1
