from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.main import app
from app.models.enums import EnrollmentStatus
from shared.auth.dependencies import get_current_user_required
from shared.constants import Role
from shared.models.user import CurrentUser

API = "/api/v1"


async def _post_edge(client: AsyncClient, course_id, prerequisite_course_id, **body):
    body.setdefault("prerequisite_type", "course_completion")
    return await client.post(
        f"{API}/courses/{course_id}/prerequisites",
        json={"prerequisite_course_id": str(prerequisite_course_id), **body},
    )


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "course"}


@pytest.mark.asyncio
async def test_request_id_echoed(async_client: AsyncClient) -> None:
    response = await async_client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_catalog_endpoints(async_client: AsyncClient) -> None:
    types = await async_client.get(f"{API}/prerequisites/types")
    assert types.status_code == 200
    assert "minimum_score" in types.json()
    methods = await async_client.get(f"{API}/prerequisites/evaluation-methods")
    assert methods.status_code == 200
    assert "automatic" in methods.json()


@pytest.mark.asyncio
async def test_create_and_list(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    created = await _post_edge(
        async_client, a.course_id, b.course_id,
        prerequisite_type="minimum_score", requirement_value=80, order=1, metadata={"k": 1},
    )
    assert created.status_code == 201
    data = created.json()
    assert data["course_id"] == str(a.course_id)
    assert data["prerequisite_type"] == "minimum_score"
    assert data["requirement_value"] == 80
    assert data["order"] == 1
    assert data["metadata"] == {"k": 1}

    listed = await async_client.get(f"{API}/courses/{a.course_id}/prerequisites")
    assert listed.status_code == 200
    assert [e["prerequisite_id"] for e in listed.json()] == [data["prerequisite_id"]]

    single = await async_client.get(f"{API}/prerequisites/{data['prerequisite_id']}")
    assert single.status_code == 200
    assert single.json()["prerequisite_course_id"] == str(b.course_id)


@pytest.mark.asyncio
async def test_create_cycle_is_422(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    assert (await _post_edge(async_client, a.course_id, b.course_id)).status_code == 201
    response = await _post_edge(async_client, b.course_id, a.course_id)
    assert response.status_code == 422
    assert response.json()["detail"] == "Circular dependency detected"


@pytest.mark.asyncio
async def test_create_self_reference_is_422(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    response = await _post_edge(async_client, a.course_id, a.course_id)
    assert response.status_code == 422
    assert response.json()["detail"] == "Course cannot be a prerequisite for itself"


@pytest.mark.asyncio
async def test_create_unknown_course_is_404(async_client: AsyncClient, make_course) -> None:
    b = await make_course("B")
    response = await _post_edge(async_client, uuid4(), b.course_id)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_invalid_type_rejected_by_schema(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    response = await _post_edge(async_client, a.course_id, b.course_id, prerequisite_type="astrology")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_and_delete(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    edge_id = (await _post_edge(async_client, a.course_id, b.course_id)).json()["prerequisite_id"]

    updated = await async_client.put(
        f"{API}/prerequisites/{edge_id}", json={"is_mandatory": False, "order": 4},
    )
    assert updated.status_code == 200
    assert updated.json()["is_mandatory"] is False
    assert updated.json()["order"] == 4
    assert updated.json()["prerequisite_type"] == "course_completion"

    deleted = await async_client.delete(f"{API}/prerequisites/{edge_id}")
    assert deleted.status_code == 200
    assert deleted.json() == {"prerequisite_id": edge_id, "deleted": True}

    missing = await async_client.get(f"{API}/prerequisites/{edge_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_check_endpoint(async_client: AsyncClient, make_course, make_enrollment) -> None:
    user_id = uuid4()
    a = await make_course("A")
    b = await make_course("B")
    await _post_edge(async_client, a.course_id, b.course_id)

    before = await async_client.get(
        f"{API}/courses/{a.course_id}/prerequisites/check", params={"user_id": str(user_id)},
    )
    assert before.status_code == 200
    assert before.json()["eligible"] is False
    assert before.json()["overall_status"] == "not_eligible"

    await make_enrollment(user_id, b.course_id, status=EnrollmentStatus.COMPLETED, final_score=90)
    after = await async_client.get(
        f"{API}/courses/{a.course_id}/prerequisites/check", params={"user_id": str(user_id)},
    )
    body = after.json()
    assert body["eligible"] is True
    assert body["met_count"] == 1
    assert body["prerequisites_met"][0]["result"]["message"] == "Course completed successfully"


@pytest.mark.asyncio
async def test_validate_path_and_stats(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    await _post_edge(async_client, a.course_id, b.course_id)

    report = await async_client.get(f"{API}/courses/{a.course_id}/prerequisites/validate")
    assert report.status_code == 200
    assert report.json()["valid"] is True

    path = await async_client.get(f"{API}/courses/{a.course_id}/prerequisites/path")
    assert path.status_code == 200
    (node,) = path.json()["path"]
    assert node["course"]["title"] == "B"
    assert node["cycle"] is False

    unknown = await async_client.get(f"{API}/courses/{uuid4()}/prerequisites/path")
    assert unknown.status_code == 404

    stats = await async_client.get(f"{API}/prerequisites/stats", params={"course_id": str(a.course_id)})
    assert stats.status_code == 200
    assert stats.json()["total_prerequisites"] == 1
    assert stats.json()["course_id"] == str(a.course_id)


@pytest.mark.asyncio
async def test_mutations_require_authentication(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    app.dependency_overrides.pop(get_current_user_required)
    response = await _post_edge(async_client, a.course_id, b.course_id)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_mutations_require_editor_role(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    learner = CurrentUser(id=uuid4(), email="learner@example.com", roles=[Role.LEARNER])
    app.dependency_overrides[get_current_user_required] = lambda: learner
    response = await _post_edge(async_client, a.course_id, b.course_id)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_to_cyclic_target_is_422(async_client: AsyncClient, make_course) -> None:
    a = await make_course("A")
    b = await make_course("B")
    c = await make_course("C")
    await _post_edge(async_client, a.course_id, b.course_id)
    edge_id = (await _post_edge(async_client, b.course_id, c.course_id)).json()["prerequisite_id"]

    response = await async_client.put(
        f"{API}/prerequisites/{edge_id}", json={"prerequisite_course_id": str(a.course_id)},
    )
    assert response.status_code == 422
    assert response.json()["detail"] == "Circular dependency detected"

    unchanged = await async_client.get(f"{API}/prerequisites/{edge_id}")
    assert unchanged.json()["prerequisite_course_id"] == str(c.course_id)


@pytest.mark.asyncio
async def test_update_unknown_edge_is_404(async_client: AsyncClient) -> None:
    response = await async_client.put(f"{API}/prerequisites/987654", json={"is_mandatory": False})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_unknown_edge_is_404(async_client: AsyncClient) -> None:
    response = await async_client.delete(f"{API}/prerequisites/987654")
    assert response.status_code == 404
