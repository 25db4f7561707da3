import uuid
from datetime import datetime

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_full_registry_flow(async_client: AsyncClient, api_base: str):
    """
    Walk the registry through a term:
    1. Register a subject
    2. Hire a teacher for it
    3. Enroll two night-shift students
    4. Move a student to the second year
    """
    run_id = str(uuid.uuid4())[:8]
    year = datetime.now().year

    # [1] Subject
    resp = await async_client.post(
        f"{api_base}/subjects",
        json={"id": "MAT101", "name": "Calculus I", "year": 1, "credits": 6},
    )
    assert resp.status_code == 201, resp.text

    # [2] Teacher
    resp = await async_client.post(
        f"{api_base}/teachers",
        json={
            "name": "Emmy Noether",
            "email": f"emmy_{run_id}@college.edu",
            "department": "Mathematics",
            "subject_ids": ["MAT101"],
        },
    )
    assert resp.status_code == 201, resp.text
    teacher = resp.json()["data"]
    assert teacher["registry"] == "MATH-0001"

    # [3] Students
    enrollments = []
    for name in ("Ana Souza", "Bruno Lima"):
        resp = await async_client.post(
            f"{api_base}/students",
            json={"name": name, "shift": "N", "subject_ids": ["MAT101"]},
        )
        assert resp.status_code == 201, resp.text
        enrollments.append(resp.json()["data"]["enrollment"])
    assert enrollments == [f"{year}N0001", f"{year}N0002"]

    resp = await async_client.get(f"{api_base}/students", params={"shift": "N"})
    students = resp.json()["data"]
    assert [s["enrollment"] for s in students] == enrollments
    assert all(s["subjects"][0]["id"] == "MAT101" for s in students)

    # [4] Promotion keeps the enrollment
    resp = await async_client.put(f"{api_base}/students/{students[0]['id']}", json={"current_year": 2})
    assert resp.status_code == 200
    assert resp.json()["data"]["enrollment"] == enrollments[0]

    resp = await async_client.get(f"{api_base}/students", params={"year": 2})
    assert resp.json()["meta"]["total"] == 1
