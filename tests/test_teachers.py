import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_faculty_directory_visible_to_students(client: AsyncClient, teacher, student) -> None:
    response = await client.get("/api/v1/teachers", headers=student["headers"])
    assert response.status_code == 200
    assert [t["employee_id"] for t in response.json()] == ["EMP001"]


@pytest.mark.asyncio
async def test_directory_requires_login(client: AsyncClient, teacher) -> None:
    response = await client.get("/api/v1/teachers")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_teacher_lists_assignments(client: AsyncClient, admin_headers, teacher) -> None:
    response = await client.get(f"/api/v1/teachers/{teacher['teacher']['id']}", headers=admin_headers)
    assert response.status_code == 200
    (assignment,) = response.json()["semester_assignments"]
    assert assignment["semester_name"] == "Semester 3"
    assert assignment["subject_name"] == "DBMS"


@pytest.mark.asyncio
async def test_assignment_subject_must_belong_to_semester(
    client: AsyncClient, admin_headers, bca, teacher, dbms
) -> None:
    response = await client.post(
        f"/api/v1/teachers/{teacher['teacher']['id']}/semester-assignments",
        json={"semester_id": bca["semesters"][1]["id"], "subject_id": dbms["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_assignment_needs_subject_or_name(client: AsyncClient, admin_headers, semester3, teacher) -> None:
    response = await client.post(
        f"/api/v1/teachers/{teacher['teacher']['id']}/semester-assignments",
        json={"semester_id": semester3["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_adding_assignment_widens_scope(client: AsyncClient, admin_headers, bca, teacher) -> None:
    semester1 = bca["semesters"][1]
    response = await client.post(
        f"/api/v1/teachers/{teacher['teacher']['id']}/semester-assignments",
        json={"semester_id": semester1["id"], "subject_name": "Orientation"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["subject_id"] is None

    semesters = await client.get(f"/api/v1/courses/{bca['id']}/semesters", headers=teacher["headers"])
    assert sorted(s["semester_number"] for s in semesters.json()) == [1, 3]


@pytest.mark.asyncio
async def test_deactivated_assignment_revokes_access(
    client: AsyncClient, admin_headers, teacher, student, semester3, dbms
) -> None:
    (assignment,) = teacher["teacher"]["semester_assignments"]
    response = await client.delete(
        f"/api/v1/teachers/{teacher['teacher']['id']}/semester-assignments/{assignment['id']}",
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    roster = await client.get("/api/v1/students", headers=teacher["headers"])
    assert roster.json() == []

    attendance = await client.post(
        "/api/v1/attendance/sessions",
        json={
            "semester_id": semester3["id"],
            "subject_id": dbms["id"],
            "date": "2024-01-10",
            "statuses": {student["student"]["id"]: "present"},
        },
        headers=teacher["headers"],
    )
    assert attendance.status_code == 403


@pytest.mark.asyncio
async def test_assignment_of_other_teacher_is_404(client: AsyncClient, admin_headers, provision_user, teacher) -> None:
    other = await provision_user(email="other@bca.edu", full_name="Other", role="teacher", employee_id="EMP002")
    (assignment,) = teacher["teacher"]["semester_assignments"]
    response = await client.delete(
        f"/api/v1/teachers/{other.json()['teacher']['id']}/semester-assignments/{assignment['id']}",
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_teacher(client: AsyncClient, admin_headers, provision_user, teacher) -> None:
    await provision_user(email="other@bca.edu", full_name="Other", role="teacher", employee_id="EMP002")
    teacher_id = teacher["teacher"]["id"]

    conflict = await client.put(f"/api/v1/teachers/{teacher_id}", json={"employee_id": "EMP002"}, headers=admin_headers)
    assert conflict.status_code == 409

    response = await client.put(
        f"/api/v1/teachers/{teacher_id}",
        json={"full_name": "Dr. Tara Teacher", "designation": "Associate Professor"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Dr. Tara Teacher"
    assert response.json()["designation"] == "Associate Professor"
    assert len(response.json()["semester_assignments"]) == 1


@pytest.mark.asyncio
async def test_only_admin_updates_teacher(client: AsyncClient, teacher) -> None:
    response = await client.put(
        f"/api/v1/teachers/{teacher['teacher']['id']}", json={"designation": "Dean"}, headers=teacher["headers"]
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_deactivated_teacher_loses_scope(client: AsyncClient, admin_headers, teacher, student) -> None:
    await client.delete(f"/api/v1/teachers/{teacher['teacher']['id']}", headers=admin_headers)

    roster = await client.get("/api/v1/students", headers=teacher["headers"])
    assert roster.status_code == 200
    assert roster.json() == []

    directory = await client.get("/api/v1/teachers", headers=admin_headers)
    assert directory.json() == []
