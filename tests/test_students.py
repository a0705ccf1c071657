import pytest
from httpx import AsyncClient


async def enroll(provision_user, bca, semester, email, roll):
    response = await provision_user(
        email=email,
        full_name=f"Student {roll}",
        role="student",
        roll_number=roll,
        course_id=bca["id"],
        current_semester_id=semester["id"],
        enrollment_year=2023,
    )
    assert response.status_code == 200, response.text
    return response.json()["student"]


@pytest.mark.asyncio
async def test_admin_lists_students_by_roll_number(client: AsyncClient, admin_headers, provision_user, bca, semester3) -> None:
    await enroll(provision_user, bca, semester3, "b@bca.edu", "BCA-020")
    await enroll(provision_user, bca, semester3, "a@bca.edu", "BCA-010")

    response = await client.get("/api/v1/students", headers=admin_headers)
    assert [s["roll_number"] for s in response.json()] == ["BCA-010", "BCA-020"]


@pytest.mark.asyncio
async def test_student_sees_only_semester_peers(client: AsyncClient, provision_user, bca, student) -> None:
    await enroll(provision_user, bca, bca["semesters"][3], "peer@bca.edu", "BCA-002")
    await enroll(provision_user, bca, bca["semesters"][1], "junior@bca.edu", "BCA-100")

    response = await client.get("/api/v1/students", headers=student["headers"])
    assert [s["roll_number"] for s in response.json()] == ["BCA-001", "BCA-002"]


@pytest.mark.asyncio
async def test_teacher_sees_students_of_assigned_semesters(client: AsyncClient, provision_user, bca, teacher, student) -> None:
    junior = await enroll(provision_user, bca, bca["semesters"][1], "junior@bca.edu", "BCA-100")

    response = await client.get("/api/v1/students", headers=teacher["headers"])
    assert [s["roll_number"] for s in response.json()] == ["BCA-001"]

    hidden = await client.get(f"/api/v1/students/{junior['id']}", headers=teacher["headers"])
    assert hidden.status_code == 404


@pytest.mark.asyncio
async def test_update_student_validates_semester_against_course(
    client: AsyncClient, admin_headers, bca, student
) -> None:
    mca = await client.post(
        "/api/v1/courses",
        json={"name": "MCA", "code": "MCA", "duration_years": 2, "total_semesters": 4},
        headers=admin_headers,
    )
    mca_detail = await client.get(f"/api/v1/courses/{mca.json()['id']}", headers=admin_headers)
    mca_sem1 = mca_detail.json()["semesters"][0]

    response = await client.put(
        f"/api/v1/students/{student['student']['id']}",
        json={"current_semester_id": mca_sem1["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/v1/students/{student['student']['id']}",
        json={"current_semester_id": bca["semesters"][4]["id"], "full_name": "Samuel Student", "guardian_name": "Pat"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["current_semester_id"] == bca["semesters"][4]["id"]
    assert data["full_name"] == "Samuel Student"
    assert data["guardian_name"] == "Pat"


@pytest.mark.asyncio
async def test_roll_number_unique_within_course(client: AsyncClient, admin_headers, provision_user, bca, semester3, student) -> None:
    other = await enroll(provision_user, bca, semester3, "other@bca.edu", "BCA-002")
    response = await client.put(
        f"/api/v1/students/{other['id']}", json={"roll_number": "BCA-001"}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_batch_assign_moves_students(
    client: AsyncClient, admin_headers, provision_user, bca, semester3, student
) -> None:
    other = await enroll(provision_user, bca, semester3, "other@bca.edu", "BCA-002")
    semester4 = bca["semesters"][4]

    response = await client.post(
        "/api/v1/students/batch-assign-semester",
        json={"student_ids": [student["student"]["id"], other["id"]], "semester_id": semester4["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"updated": 2, "semester_id": semester4["id"], "course_id": bca["id"]}

    in_sem4 = await client.get("/api/v1/students", params={"semester_id": semester4["id"]}, headers=admin_headers)
    assert len(in_sem4.json()) == 2


@pytest.mark.asyncio
async def test_batch_assign_unknown_student(client: AsyncClient, admin_headers, semester3, student) -> None:
    response = await client.post(
        "/api/v1/students/batch-assign-semester",
        json={"student_ids": ["00000000-0000-0000-0000-000000000000"], "semester_id": semester3["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deactivated_student_drops_out_of_lists(client: AsyncClient, admin_headers, student) -> None:
    response = await client.delete(f"/api/v1/students/{student['student']['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    listing = await client.get("/api/v1/students", headers=admin_headers)
    assert listing.json() == []
