"""
Test client endpoints.
"""

from conftest import error_of


def client_body(**values):
    return {
        "name": "Acme Corp",
        "type": "company",
        "value": 150000,
        "startDate": "2025-01-01",
        **values,
    }


def create_client(client, **values):
    response = client.post("/api/clients", json=client_body(**values))
    assert response.status_code == 201, response.text
    return response.json()["client"]


def test_create_client(client, user):
    created = create_client(client, endDate="2025-06-30T12:00:00Z")
    assert created["name"] == "Acme Corp"
    assert created["type"] == "company"
    assert created["value"] == 150000
    assert created["startDate"] == "2025-01-01T00:00:00.000Z"
    assert created["endDate"] == "2025-06-30T12:00:00.000Z"


def test_create_client_validation(client, user):
    cases = [
        (client_body(name=" "), "Client name is required."),
        (client_body(type="partner"), "Client type must be either 'person' or 'company'."),
        (client_body(value=0), "Client value must be a positive integer."),
        (client_body(value="100"), "Client value must be a positive integer."),
        (client_body(value=12.5), "Client value must be a positive integer."),
        (client_body(startDate=None), "Client start date is required."),
        (client_body(startDate="yesterday"), "Client start date must be a valid ISO date string."),
    ]
    for body, message in cases:
        response = client.post("/api/clients", json=body)
        assert response.status_code == 400, body
        assert error_of(response)["message"] == message


def test_end_date_must_follow_start_date(client, user):
    same_day = client.post("/api/clients", json=client_body(endDate="2025-01-01"))
    assert same_day.status_code == 400
    assert error_of(same_day)["message"] == "Client end date must be after the start date."

    earlier = client.post("/api/clients", json=client_body(endDate="2024-12-31"))
    assert earlier.status_code == 400


def test_update_checks_merged_dates(client, user):
    created = create_client(client, endDate="2025-03-01")
    url = f"/api/clients/{created['id']}"

    moved_start = client.patch(url, json={"startDate": "2025-04-01"})
    assert moved_start.status_code == 400
    assert error_of(moved_start)["message"] == "Client end date must be after the start date."

    response = client.patch(url, json={"startDate": "2025-04-01", "endDate": None})
    assert response.status_code == 200
    updated = response.json()["client"]
    assert updated["startDate"] == "2025-04-01T00:00:00.000Z"
    assert updated["endDate"] is None

    assert client.patch(url, json={}).status_code == 400
    assert client.patch(url, json={"type": "partner"}).status_code == 400


def test_pagination(client, user):
    for index in range(3):
        create_client(client, name=f"Client {index}", value=100 + index)

    response = client.get(
        "/api/clients", params={"page": 2, "limit": 2, "sortBy": "value", "sortOrder": "asc"}
    )
    assert response.status_code == 200
    data = response.json()
    assert [c["name"] for c in data["clients"]] == ["Client 2"]
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}


def test_pagination_clamps_parameters(client, user):
    data = client.get("/api/clients", params={"page": 0, "limit": 1000}).json()
    assert data["pagination"] == {"page": 1, "limit": 100, "total": 0, "totalPages": 0}


def test_filter_by_type(client, user):
    create_client(client, name="Jane", type="person")
    create_client(client, name="Acme", type="company")

    people = client.get("/api/clients", params={"type": "person"}).json()
    assert [c["name"] for c in people["clients"]] == ["Jane"]
    assert people["pagination"]["total"] == 1

    assert client.get("/api/clients", params={"type": "all"}).json()["pagination"]["total"] == 2
    assert client.get("/api/clients", params={"type": "partner"}).status_code == 400


def test_foreign_client_is_not_found(client, user, other_client, other_user):
    created = create_client(client)
    url = f"/api/clients/{created['id']}"

    assert other_client.patch(url, json={"name": "Mine"}).status_code == 404
    response = other_client.delete(url)
    assert response.status_code == 404
    assert error_of(response)["message"] == "Client not found or access denied."
    assert other_client.get("/api/clients").json()["pagination"]["total"] == 0


def test_delete_client(client, user):
    created = create_client(client)
    response = client.delete(f"/api/clients/{created['id']}")
    assert response.status_code == 200
    assert response.json()["message"] == "Client deleted successfully."
    assert client.get("/api/clients").json()["clients"] == []
