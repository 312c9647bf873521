"""HTTP API tests for erasure jobs and subject export (ASGI, in-memory engine)."""

from httpx import AsyncClient

from tests.fakes import seed_scout


async def test_routes_require_admin_key(engine_client: AsyncClient) -> None:
    """Every erasure/export route rejects a missing or wrong X-Admin-Key with 401."""
    for method, url, body in (
        ("POST", "/api/v1/erasure-jobs", {"subject_id": "s1", "role": "scout"}),
        ("GET", "/api/v1/erasure-jobs/job-1", None),
        ("POST", "/api/v1/erasure-jobs/job-1/cancel", None),
        ("POST", "/api/v1/subjects/s1/export", {"role": "scout"}),
    ):
        response = await engine_client.request(method, url, json=body)
        assert response.status_code == 401, url
        assert response.json()["error"] == "AUTHENTICATION_ERROR"

    response = await engine_client.get(
        "/api/v1/erasure-jobs/job-1", headers={"X-Admin-Key": "wrong"}
    )
    assert response.status_code == 401


async def test_engine_not_configured_returns_503(client: AsyncClient, admin_headers) -> None:
    response = await client.post(
        "/api/v1/erasure-jobs", json={"subject_id": "s1", "role": "scout"}, headers=admin_headers
    )
    assert response.status_code == 503
    assert response.json()["error"] == "ENGINE_NOT_CONFIGURED"


async def test_erasure_job_lifecycle(
    engine_client: AsyncClient, admin_headers, lifecycle_service, store, blob_store
) -> None:
    """POST returns 202 with a job id; once finished, GET shows COMPLETE with step results."""
    seed_scout(store, blob_store)

    response = await engine_client.post(
        "/api/v1/erasure-jobs", json={"subject_id": "s1", "role": "scout"}, headers=admin_headers
    )
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    await lifecycle_service.worker.wait(job_id)
    response = await engine_client.get(f"/api/v1/erasure-jobs/{job_id}", headers=admin_headers)

    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "complete"
    assert job["subject_id"] == "s1"
    assert job["role"] == "scout"
    assert job["credential_revoked"] is True
    steps = {s["entity_type"]: s for s in job["steps"]}
    assert steps["users"]["blobs_deleted"] == 1
    assert steps["healthRecords"]["outcome"] == "ok"
    assert steps["authIdentity"]["outcome"] == "ok"


async def test_concurrent_request_returns_409(
    engine_client: AsyncClient, admin_headers, subject_lock, jobs
) -> None:
    """A subject whose lock is held (job in flight elsewhere) is rejected without state change."""
    await subject_lock.acquire("s1")

    response = await engine_client.post(
        "/api/v1/erasure-jobs", json={"subject_id": "s1", "role": "scout"}, headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["error"] == "JOB_ALREADY_RUNNING"
    assert jobs.jobs == {}


async def test_unknown_role_returns_400(engine_client: AsyncClient, admin_headers) -> None:
    response = await engine_client.post(
        "/api/v1/erasure-jobs", json={"subject_id": "s1", "role": "chief"}, headers=admin_headers
    )
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "VALIDATION_ERROR"
    assert data["details"] == {"field": "role"}


async def test_missing_subject_returns_422(engine_client: AsyncClient, admin_headers) -> None:
    response = await engine_client.post(
        "/api/v1/erasure-jobs", json={"role": "scout"}, headers=admin_headers
    )
    assert response.status_code == 422


async def test_unknown_job_returns_404(engine_client: AsyncClient, admin_headers) -> None:
    response = await engine_client.get("/api/v1/erasure-jobs/missing", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "RESOURCE_NOT_FOUND"

    response = await engine_client.post(
        "/api/v1/erasure-jobs/missing/cancel", headers=admin_headers
    )
    assert response.status_code == 404


async def test_cancel_finished_job(
    engine_client: AsyncClient, admin_headers, lifecycle_service
) -> None:
    response = await engine_client.post(
        "/api/v1/erasure-jobs", json={"subject_id": "s1", "role": "parent"}, headers=admin_headers
    )
    job_id = response.json()["job_id"]
    await lifecycle_service.worker.wait(job_id)

    response = await engine_client.post(f"/api/v1/erasure-jobs/{job_id}/cancel", headers=admin_headers)

    assert response.status_code == 202
    assert response.json() == {"job_id": job_id, "cancelled": False}


async def test_export_returns_sections(
    engine_client: AsyncClient, admin_headers, store, blob_store
) -> None:
    seed_scout(store, blob_store)
    store.seed("posts", "p1", {"authorId": "s1", "content": "hi", "attachment": b"\x00\x01"})

    response = await engine_client.post(
        "/api/v1/subjects/s1/export", json={"role": "scout"}, headers=admin_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["subject_id"] == "s1"
    assert data["sections"]["healthRecords"] == [
        {"id": "h1", "data": {"scoutId": "s1", "allergies": ["pollen"], "bloodType": "A+"}}
    ]
    assert data["sections"]["posts"][0]["data"]["attachment"] == "AAE="
    assert data["total_records"] == 10
