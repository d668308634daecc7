from conftest import auth_headers, make_user

NEW_BUDGET = {
    "title": "Conference travel",
    "description": "Two events",
    "department": "Sales",
    "total_amount": "2500.00",
    "period": "Annual",
    "start_date": "2026-01-01",
    "end_date": "2026-12-31",
    "items": [{"category": "Flights", "amount": "1500"}, {"category": "Hotels", "amount": "1000"}],
}


async def create_budget(client, user, **overrides):
    response = await client.post("/budgets", json={**NEW_BUDGET, **overrides}, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_register_and_login(client):
    response = await client.post("/auth/register", json={
        "email": "frank@example.com", "password": "secret123", "first_name": "Frank", "hourly_rate": "45"})
    assert response.status_code == 201
    assert response.json()["data"]["roles"] == ["Employee"]

    response = await client.post("/auth/login", json={"email": "frank@example.com", "password": "secret123"})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "frank@example.com"

    me = await client.get("/users/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["first_name"] == "Frank"


async def test_token_form_login(client, employee):
    response = await client.post("/auth/token", data={"username": "alice@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["access_token"]


async def test_bad_credentials(client, employee):
    response = await client.post("/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_duplicate_registration(client, employee):
    response = await client.post("/auth/register", json={"email": "alice@example.com", "password": "secret123"})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "validation_error"


async def test_requests_without_token_are_rejected(client):
    assert (await client.get("/budgets")).status_code == 401
    assert (await client.get("/dashboard/stats")).status_code == 401
    bad = await client.get("/budgets", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


async def test_budget_lifecycle_over_http(client, employee, manager):
    budget = await create_budget(client, employee)
    assert budget["status"] == "Draft"
    assert budget["remaining_amount"] == 2500
    budget_id = budget["id"]
    headers = auth_headers(employee)

    response = await client.put(f"/budgets/{budget_id}", headers=headers,
                                json={"title": "Conference travel 2026", "total_amount": "3000"})
    assert response.status_code == 204

    response = await client.post(f"/budgets/{budget_id}/submit", headers=headers)
    assert response.status_code == 200
    approval_id = response.json()["data"]["approval_id"]

    assert (await client.post(f"/budgets/{budget_id}/submit", headers=headers)).status_code == 409
    response = await client.put(f"/budgets/{budget_id}", headers=headers,
                                json={"title": "Too late", "total_amount": "1"})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "invalid_state"
    assert (await client.delete(f"/budgets/{budget_id}", headers=headers)).status_code == 409

    pending = await client.get("/approvals/pending", headers=auth_headers(manager))
    assert [a["id"] for a in pending.json()["data"]] == [approval_id]

    response = await client.post(f"/approvals/{approval_id}/review", headers=auth_headers(employee),
                                 json={"decision": "Approved"})
    assert response.status_code == 403

    response = await client.post(f"/approvals/{approval_id}/review", headers=auth_headers(manager),
                                 json={"decision": "Approved", "comments": "Go ahead"})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Approved"

    response = await client.post(f"/approvals/{approval_id}/review", headers=auth_headers(manager),
                                 json={"decision": "Rejected"})
    assert response.status_code == 409

    detail = await client.get(f"/budgets/{budget_id}", headers=headers)
    assert detail.json()["data"]["title"] == "Conference travel 2026"
    assert detail.json()["data"]["status"] == "Submitted"

    history = await client.get(f"/budgets/{budget_id}/history", headers=headers)
    assert [h["action"] for h in history.json()["data"]] == ["Create", "Update", "Submit"]


async def test_invalid_budget_input_is_400(client, employee):
    headers = auth_headers(employee)
    for total in ("0", "0.001", "10000000000000000"):
        response = await client.post("/budgets", json={**NEW_BUDGET, "total_amount": total}, headers=headers)
        assert response.status_code == 400, total
    assert (await client.get("/budgets", headers=headers)).json()["total"] == 0

    response = await client.post("/budgets", json={**NEW_BUDGET, "end_date": "2025-12-31"}, headers=headers)
    assert response.status_code == 400

    payload = {k: v for k, v in NEW_BUDGET.items() if k != "title"}
    response = await client.post("/budgets", json=payload, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "validation_error"

    response = await client.post("/budgets", json={**NEW_BUDGET, "period": "Weekly"}, headers=headers)
    assert response.status_code == 400


async def test_missing_budget_is_404(client, employee):
    headers = auth_headers(employee)
    assert (await client.get("/budgets/999", headers=headers)).status_code == 404
    assert (await client.post("/budgets/999/submit", headers=headers)).status_code == 404
    assert (await client.delete("/budgets/999", headers=headers)).status_code == 404
    assert (await client.post("/approvals/999/review", headers=headers,
                              json={"decision": "Approved"})).status_code == 404


async def test_delete_draft_budget(client, employee, manager):
    budget = await create_budget(client, employee)

    response = await client.delete(f"/budgets/{budget['id']}", headers=auth_headers(manager))
    assert response.status_code == 403

    response = await client.delete(f"/budgets/{budget['id']}", headers=auth_headers(employee))
    assert response.status_code == 204
    assert (await client.get(f"/budgets/{budget['id']}", headers=auth_headers(employee))).status_code == 404


async def test_budget_items(client, employee):
    budget = await create_budget(client, employee, items=[])
    headers = auth_headers(employee)

    response = await client.post(f"/budgets/{budget['id']}/items", headers=headers,
                                 json={"category": "Meals", "amount": "200"})
    assert response.status_code == 201
    item_id = response.json()["data"]["id"]

    response = await client.delete(f"/budgets/{budget['id']}/items/{item_id}", headers=headers)
    assert response.status_code == 204


async def test_list_budgets_is_paged(client, employee):
    for i in range(3):
        await create_budget(client, employee, title=f"Budget {i}")

    response = await client.get("/budgets?page=2&page_size=2", headers=auth_headers(employee))
    body = response.json()
    assert body["total"] == 3
    assert len(body["data"]) == 1


async def test_dashboard_stats(client, employee):
    response = await client.get("/dashboard/stats", headers=auth_headers(employee))
    assert response.status_code == 200
    assert set(response.json()["data"]) == {"total_budget", "spent_this_month", "pending_approvals",
                                            "active_projects"}

    response = await client.get("/dashboard/department_spending", headers=auth_headers(employee))
    assert response.status_code == 200
    assert response.json()["data"] == []


async def test_timesheets_over_http(client, employee, manager):
    headers = auth_headers(employee)
    response = await client.post("/timesheets", headers=headers,
                                 json={"date": "2026-03-02", "hours": "7.5", "project_name": "Apollo"})
    assert response.status_code == 201
    entry = response.json()["data"]
    assert entry["total_cost"] == 375

    response = await client.post("/timesheets", headers=headers,
                                 json={"date": "2026-03-02", "hours": "30", "project_name": "Apollo"})
    assert response.status_code == 400

    assert (await client.post(f"/timesheets/{entry['id']}/submit", headers=headers)).status_code == 200

    response = await client.post(f"/timesheets/{entry['id']}/review", headers=headers,
                                 json={"decision": "Approved"})
    assert response.status_code == 403

    response = await client.post(f"/timesheets/{entry['id']}/review", headers=auth_headers(manager),
                                 json={"decision": "Approved"})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Approved"

    assert (await client.delete(f"/timesheets/{entry['id']}", headers=headers)).status_code == 409


async def test_report_is_scoped(client, db, employee, manager):
    other = await make_user(db, "gina@example.com")
    await create_budget(client, employee, title="Alice budget")
    await create_budget(client, other, title="Gina budget")

    mine = await client.get("/report/budgets", headers=auth_headers(employee))
    assert [row["title"] for row in mine.json()["data"]] == ["Alice budget"]

    everything = await client.get("/report/budgets", headers=auth_headers(manager))
    assert len(everything.json()["data"]) == 2

    active = await client.get("/report/budgets?status=Active", headers=auth_headers(manager))
    assert active.json()["data"] == []

    assert (await client.get("/report/budgets?status=Bogus", headers=auth_headers(manager))).status_code == 400


async def test_report_excel_download(client, employee):
    await create_budget(client, employee)

    response = await client.get("/report/budgets?format=excel", headers=auth_headers(employee))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert "budget_report_" in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"


async def test_delete_user_requires_admin(client, db, employee, admin):
    target = await make_user(db, "henry@example.com")

    assert (await client.delete(f"/users/{target.id}", headers=auth_headers(employee))).status_code == 403
    assert (await client.delete(f"/users/{target.id}", headers=auth_headers(admin))).status_code == 204
    assert (await client.delete(f"/users/{target.id}", headers=auth_headers(admin))).status_code == 404

    await create_budget(client, employee)
    assert (await client.delete(f"/users/{employee.id}", headers=auth_headers(admin))).status_code == 409


async def test_lookup_labels(client):
    response = await client.get("/lookup/budget_status?language=zh-CN")
    assert response.status_code == 200
    labels = {row["value"]: row["label"] for row in response.json()["data"]}
    assert labels["Draft"] == "草稿"
    assert len(labels) == 8

    assert (await client.get("/lookup/unknown")).status_code == 404


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert "status" in response.json()
