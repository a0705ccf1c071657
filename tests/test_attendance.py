import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Attendance

SESSION_DATE = "2024-01-10"


async def save(client: AsyncClient, headers, semester_id, subject_id, statuses, on=SESSION_DATE):
    return await client.post(
        "/api/v1/attendance/sessions",
        json={"semester_id": semester_id, "subject_id": subject_id, "date": on, "statuses": statuses},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_save_then_resave_replaces_status(client: AsyncClient, teacher, student, semester3, dbms) -> None:
    student_id = student["student"]["id"]

    response = await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "present"})
    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert response.json()["teacher_id"] == teacher["teacher"]["id"]

    history = await client.get(f"/api/v1/attendance/students/{student_id}", headers=teacher["headers"])
    rows = [r for r in history.json() if r["date"] == SESSION_DATE]
    assert len(rows) == 1
    assert rows[0]["status"] == "present"
    assert rows[0]["subject_name"] == "DBMS"

    response = await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "absent"})
    assert response.status_code == 200

    history = await client.get(f"/api/v1/attendance/students/{student_id}", headers=teacher["headers"])
    rows = [r for r in history.json() if r["date"] == SESSION_DATE]
    assert len(rows) == 1
    assert rows[0]["status"] == "absent"


@pytest.mark.asyncio
async def test_saving_same_roster_twice_is_idempotent(
    client: AsyncClient, teacher, student, semester3, dbms, db_session: AsyncSession
) -> None:
    statuses = {student["student"]["id"]: "late"}
    await save(client, teacher["headers"], semester3["id"], dbms["id"], statuses)
    await save(client, teacher["headers"], semester3["id"], dbms["id"], statuses)

    rows = (await db_session.execute(select(Attendance))).scalars().all()
    assert [(str(r.student_id), r.status) for r in rows] == [(student["student"]["id"], "late")]


@pytest.mark.asyncio
async def test_omitted_student_loses_row(
    client: AsyncClient, provision_user, login_as, teacher, student, bca, semester3, dbms
) -> None:
    other = await provision_user(
        email="second@bca.edu",
        full_name="Second Student",
        role="student",
        roll_number="BCA-002",
        course_id=bca["id"],
        current_semester_id=semester3["id"],
        enrollment_year=2023,
    )
    other_id = other.json()["student"]["id"]
    first_id = student["student"]["id"]

    await save(client, teacher["headers"], semester3["id"], dbms["id"], {first_id: "present", other_id: "present"})
    await save(client, teacher["headers"], semester3["id"], dbms["id"], {first_id: "present"})

    loaded = await client.get(
        "/api/v1/attendance/sessions",
        params={"semester_id": semester3["id"], "subject_id": dbms["id"], "date": SESSION_DATE},
        headers=teacher["headers"],
    )
    assert loaded.status_code == 200
    assert loaded.json()["statuses"] == {first_id: "present"}

    other_history = await client.get(f"/api/v1/attendance/students/{other_id}", headers=teacher["headers"])
    assert other_history.json() == []


@pytest.mark.asyncio
async def test_other_dates_are_untouched(client: AsyncClient, teacher, student, semester3, dbms) -> None:
    student_id = student["student"]["id"]
    await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "present"}, on="2024-01-09")
    await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "absent"})

    history = await client.get(f"/api/v1/attendance/students/{student_id}", headers=teacher["headers"])
    assert [(r["date"], r["status"]) for r in history.json()] == [
        ("2024-01-10", "absent"),
        ("2024-01-09", "present"),
    ]


@pytest.mark.asyncio
async def test_empty_roster_clears_session(client: AsyncClient, teacher, student, semester3, dbms, caplog) -> None:
    student_id = student["student"]["id"]
    await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "present"})

    with caplog.at_level("WARNING"):
        response = await save(client, teacher["headers"], semester3["id"], dbms["id"], {})
    assert response.status_code == 200
    assert response.json()["cleared"] is True
    assert any("Attendance cleared" in r.getMessage() for r in caplog.records)

    history = await client.get(f"/api/v1/attendance/students/{student_id}", headers=teacher["headers"])
    assert history.json() == []


@pytest.mark.asyncio
async def test_teacher_cannot_record_unassigned_subject(
    client: AsyncClient, admin_headers, teacher, student, semester3
) -> None:
    other = await client.post(
        "/api/v1/subjects",
        json={"semester_id": semester3["id"], "name": "Networks", "code": "BCA302"},
        headers=admin_headers,
    )
    response = await save(
        client, teacher["headers"], semester3["id"], other.json()["id"], {student["student"]["id"]: "present"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_student_cannot_record(client: AsyncClient, student, semester3, dbms) -> None:
    response = await save(client, student["headers"], semester3["id"], dbms["id"], {})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_student_in_roster_is_404(client: AsyncClient, teacher, semester3, dbms) -> None:
    response = await save(
        client, teacher["headers"], semester3["id"], dbms["id"], {"00000000-0000-0000-0000-000000000001": "present"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_records_without_teacher(client: AsyncClient, admin_headers, student, semester3, dbms) -> None:
    response = await save(client, admin_headers, semester3["id"], dbms["id"], {student["student"]["id"]: "excused"})
    assert response.status_code == 200
    assert response.json()["teacher_id"] is None


@pytest.mark.asyncio
async def test_student_summary_percentage(client: AsyncClient, teacher, student, semester3, dbms) -> None:
    student_id = student["student"]["id"]
    for on, status in [("2024-01-08", "present"), ("2024-01-09", "late"), ("2024-01-10", "absent"), ("2024-01-11", "excused")]:
        await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: status}, on=on)

    response = await client.get(f"/api/v1/attendance/students/{student_id}/summary", headers=teacher["headers"])
    assert response.status_code == 200
    summary = response.json()
    assert summary["total"] == 4
    assert summary["present"] == 1
    assert summary["late"] == 1
    assert summary["percentage"] == 50.0


@pytest.mark.asyncio
async def test_my_attendance_with_no_rows_is_zero(client: AsyncClient, student) -> None:
    response = await client.get("/api/v1/attendance/me", headers=student["headers"])
    assert response.status_code == 200
    assert response.json()["summary"]["total"] == 0
    assert response.json()["summary"]["percentage"] == 0.0
    assert response.json()["records"] == []


@pytest.mark.asyncio
async def test_student_cannot_read_peer_history(
    client: AsyncClient, provision_user, student, bca, semester3
) -> None:
    other = await provision_user(
        email="peer@bca.edu",
        full_name="Peer",
        role="student",
        roll_number="BCA-003",
        course_id=bca["id"],
        current_semester_id=semester3["id"],
        enrollment_year=2023,
    )
    response = await client.get(
        f"/api/v1/attendance/students/{other.json()['student']['id']}", headers=student["headers"]
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deactivated_student_history_is_kept(
    client: AsyncClient, admin_headers, teacher, student, semester3, dbms
) -> None:
    student_id = student["student"]["id"]
    await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "present"})
    await client.delete(f"/api/v1/students/{student_id}", headers=admin_headers)

    history = await client.get(f"/api/v1/attendance/students/{student_id}", headers=admin_headers)
    assert history.status_code == 200
    assert len(history.json()) == 1


@pytest.mark.asyncio
async def test_student_outside_session_semester_is_rejected(
    client: AsyncClient, provision_user, login_as, teacher, student, bca, semester3, dbms
) -> None:
    junior = await provision_user(
        email="junior@bca.edu",
        full_name="Junior Student",
        role="student",
        roll_number="BCA-100",
        course_id=bca["id"],
        current_semester_id=bca["semesters"][1]["id"],
        enrollment_year=2024,
    )
    junior_id = junior.json()["student"]["id"]

    response = await save(
        client,
        teacher["headers"],
        semester3["id"],
        dbms["id"],
        {student["student"]["id"]: "present", junior_id: "absent"},
    )
    assert response.status_code == 400

    junior_headers = await login_as("junior@bca.edu")
    mine = await client.get("/api/v1/attendance/me", headers=junior_headers)
    assert mine.json()["records"] == []


@pytest.mark.asyncio
async def test_deactivated_student_cannot_be_recorded(
    client: AsyncClient, admin_headers, teacher, student, semester3, dbms, db_session: AsyncSession
) -> None:
    student_id = student["student"]["id"]
    await client.delete(f"/api/v1/students/{student_id}", headers=admin_headers)

    response = await save(client, teacher["headers"], semester3["id"], dbms["id"], {student_id: "present"})
    assert response.status_code == 400

    rows = (await db_session.execute(select(Attendance))).scalars().all()
    assert rows == []
