"""
Test project endpoints.
"""

import uuid

from conftest import error_of


def create_project(client, **values):
    body = {"name": "Website redesign", **values}
    response = client.post("/api/projects", json=body)
    assert response.status_code == 201, response.text
    return response.json()["project"]


def test_requires_authentication(client):
    response = client.get("/api/projects")
    assert response.status_code == 401
    assert error_of(response)["message"] == "Authentication required."


def test_create_project_defaults(client, user):
    project = create_project(client, name="  Launch  ", description="   ")
    assert project["name"] == "Launch"
    assert project["description"] is None
    assert project["status"] == "todo"
    assert project["priority"] == "medium"
    assert project["userId"] == user["id"]
    assert project["createdAt"].endswith("Z")


def test_create_project_validation(client, user):
    blank = client.post("/api/projects", json={"name": "   "})
    assert blank.status_code == 400
    assert error_of(blank)["message"] == "Project name is required."

    bad_status = client.post("/api/projects", json={"name": "X", "status": "archived"})
    assert bad_status.status_code == 400
    assert error_of(bad_status)["code"] == "VALIDATION_ERROR"

    bad_priority = client.post("/api/projects", json={"name": "X", "priority": "urgent"})
    assert bad_priority.status_code == 400

    not_json = client.post(
        "/api/projects", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert not_json.status_code == 400


def test_list_projects_with_task_counts(client, user):
    project = create_project(client)
    create_project(client, name="Empty")
    for status in ("todo", "done", "done"):
        client.post(
            "/api/tasks", json={"title": f"Task {status}", "status": status, "projectId": project["id"]}
        )

    response = client.get("/api/projects", params={"sortBy": "taskCount", "sortOrder": "desc"})
    assert response.status_code == 200
    projects = response.json()["projects"]
    assert [p["name"] for p in projects] == ["Website redesign", "Empty"]
    assert projects[0]["taskCount"] == 3
    assert projects[0]["completedTaskCount"] == 2
    assert projects[1]["taskCount"] == 0
    assert projects[1]["completedTaskCount"] == 0


def test_list_projects_filters_and_sorting(client, user):
    create_project(client, name="Alpha", status="done", priority="high")
    create_project(client, name="Beta", status="todo", priority="high")
    create_project(client, name="Gamma", status="done", priority="low")

    done = client.get("/api/projects", params={"status": "done"}).json()["projects"]
    assert sorted(p["name"] for p in done) == ["Alpha", "Gamma"]

    high_done = client.get(
        "/api/projects", params={"status": "done", "priority": "high"}
    ).json()["projects"]
    assert [p["name"] for p in high_done] == ["Alpha"]

    everything = client.get("/api/projects", params={"status": "all"}).json()["projects"]
    assert len(everything) == 3

    by_name = client.get("/api/projects", params={"sortBy": "name", "sortOrder": "asc"})
    assert [p["name"] for p in by_name.json()["projects"]] == ["Alpha", "Beta", "Gamma"]

    bad_sort = client.get("/api/projects", params={"sortBy": "password"})
    assert bad_sort.status_code == 400
    assert client.get("/api/projects", params={"status": "archived"}).status_code == 400


def test_get_project_detail_with_tasks(client, user):
    project = create_project(client)
    client.post("/api/tasks", json={"title": "Wireframes", "projectId": project["id"]})
    client.post("/api/tasks", json={"title": "Unrelated"})

    response = client.get(f"/api/projects/{project['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["project"]["id"] == project["id"]
    assert [t["title"] for t in data["tasks"]] == ["Wireframes"]


def test_update_project(client, user):
    project = create_project(client)

    response = client.patch(
        f"/api/projects/{project['id']}", json={"status": "in_progress", "description": "Q3"}
    )
    assert response.status_code == 200
    updated = response.json()["project"]
    assert updated["status"] == "in_progress"
    assert updated["description"] == "Q3"
    assert updated["name"] == "Website redesign"

    empty = client.patch(f"/api/projects/{project['id']}", json={})
    assert empty.status_code == 400
    assert error_of(empty)["message"] == "No valid fields provided for update."

    blank = client.patch(f"/api/projects/{project['id']}", json={"name": "  "})
    assert blank.status_code == 400

    null_status = client.patch(f"/api/projects/{project['id']}", json={"status": None})
    assert null_status.status_code == 400


def test_invalid_project_id(client, user):
    response = client.get("/api/projects/not-a-uuid")
    assert response.status_code == 400
    assert error_of(response)["message"] == "Invalid project id."


def test_other_users_project_is_not_found(client, user, other_client, other_user):
    project = create_project(client)
    url = f"/api/projects/{project['id']}"

    for response in (
        other_client.get(url),
        other_client.patch(url, json={"name": "Mine now"}),
        other_client.delete(url),
    ):
        assert response.status_code == 404
        assert error_of(response)["message"] == "Project not found or access denied."

    assert other_client.get("/api/projects").json()["projects"] == []
    assert client.get(url).status_code == 200

    missing = client.get(f"/api/projects/{uuid.uuid4()}")
    assert missing.status_code == 404


def test_delete_project_cascades(client, user):
    project = create_project(client)
    task = client.post(
        "/api/tasks", json={"title": "Child", "projectId": project["id"]}
    ).json()["task"]
    uploaded = client.post(
        "/api/files",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"projectId": project["id"]},
    ).json()["file"]

    response = client.delete(f"/api/projects/{project['id']}")
    assert response.status_code == 200
    assert response.json()["message"] == "Project deleted successfully."

    assert client.get(f"/api/projects/{project['id']}").status_code == 404
    assert client.patch(f"/api/tasks/{task['id']}", json={"title": "x"}).status_code == 404
    assert client.get(f"/api/files/{uploaded['id']}").status_code == 404
