import pytest
from httpx import AsyncClient


async def share(client: AsyncClient, headers, semester_id, title="Normalisation notes", files=None, **extra):
    data = {"semester_id": semester_id, "title": title}
    data.update({k: str(v) for k, v in extra.items()})
    return await client.post("/api/v1/materials", data=data, files=files, headers=headers)


@pytest.mark.asyncio
async def test_teacher_shares_file(client: AsyncClient, teacher, semester3, dbms, file_store) -> None:
    response = await share(
        client,
        teacher["headers"],
        semester3["id"],
        files={"file": ("notes.pdf", b"%PDF-1.4 notes", "application/pdf")},
        subject_id=dbms["id"],
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["teacher_id"] == teacher["teacher"]["id"]
    assert data["file_name"] == "notes.pdf"
    assert data["file_type"] == "application/pdf"
    (path,) = file_store.objects
    assert path.startswith(f"materials/{teacher['teacher']['id']}/")
    assert file_store.objects[path] == b"%PDF-1.4 notes"


@pytest.mark.asyncio
async def test_material_without_file(client: AsyncClient, teacher, semester3, file_store) -> None:
    response = await share(client, teacher["headers"], semester3["id"], description="Read chapter 4")
    assert response.status_code == 201
    assert response.json()["file_url"] is None
    assert file_store.objects == {}


@pytest.mark.asyncio
async def test_teacher_cannot_share_with_unassigned_semester(client: AsyncClient, teacher, bca) -> None:
    response = await share(client, teacher["headers"], bca["semesters"][1]["id"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_student_cannot_share(client: AsyncClient, student, semester3) -> None:
    response = await share(client, student["headers"], semester3["id"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_student_sees_current_semester_only(
    client: AsyncClient, admin_headers, teacher, student, bca, semester3
) -> None:
    await share(client, teacher["headers"], semester3["id"], title="Semester 3 notes")
    await share(
        client, admin_headers, bca["semesters"][1]["id"], title="Semester 1 notes", teacher_id=teacher["teacher"]["id"]
    )

    response = await client.get("/api/v1/materials", headers=student["headers"])
    assert [m["title"] for m in response.json()] == ["Semester 3 notes"]

    everything = await client.get("/api/v1/materials", headers=admin_headers)
    assert {m["title"] for m in everything.json()} == {"Semester 3 notes", "Semester 1 notes"}


@pytest.mark.asyncio
async def test_update_and_deactivate_material(client: AsyncClient, teacher, student, semester3) -> None:
    created = await share(client, teacher["headers"], semester3["id"])
    material_id = created.json()["id"]

    response = await client.put(
        f"/api/v1/materials/{material_id}", data={"title": "Normal forms"}, headers=teacher["headers"]
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Normal forms"

    response = await client.delete(f"/api/v1/materials/{material_id}", headers=teacher["headers"])
    assert response.json()["is_active"] is False

    listing = await client.get("/api/v1/materials", headers=student["headers"])
    assert listing.json() == []


@pytest.mark.asyncio
async def test_other_teacher_cannot_edit(client: AsyncClient, provision_user, login_as, teacher, semester3) -> None:
    created = await share(client, teacher["headers"], semester3["id"])
    await provision_user(
        email="other@bca.edu",
        full_name="Other",
        role="teacher",
        employee_id="EMP002",
        semester_assignments=[{"semester_id": semester3["id"], "subject_name": "Lab"}],
    )
    other_headers = await login_as("other@bca.edu")

    response = await client.delete(f"/api/v1/materials/{created.json()['id']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_clears_description(client: AsyncClient, teacher, semester3, dbms) -> None:
    created = await share(client, teacher["headers"], semester3["id"], subject_id=dbms["id"], description="Ch. 4")
    material_id = created.json()["id"]

    response = await client.put(
        f"/api/v1/materials/{material_id}", data={"clear": ["description", "subject_id"]}, headers=teacher["headers"]
    )
    assert response.status_code == 200, response.text
    assert response.json()["description"] is None
    assert response.json()["subject_id"] is None
