"""Integration tests for the HTTP API and the realtime WebSocket."""

import pytest
from fastapi.testclient import TestClient


def _create_project(client: TestClient, name: str = "Website") -> str:
    response = client.post("/projects", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


def _create_task(client: TestClient, project_id: str, name: str, **fields) -> dict:
    response = client.post("/tasks", json={"project_id": project_id, "name": name, **fields})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def project_tree(api_client: TestClient) -> dict[str, str]:
    """Project with Root > Child and a separate Other root."""
    project_id = _create_project(api_client)
    root = _create_task(api_client, project_id, "Root", start_date="2024-01-01", end_date="2024-01-10")
    child = _create_task(
        api_client, project_id, "Child", parent_id=root["id"], start_date="2024-01-02", end_date="2024-01-05"
    )
    other = _create_task(api_client, project_id, "Other", start_date="2024-01-12")
    return {"project": project_id, "root": root["id"], "child": child["id"], "other": other["id"]}


@pytest.mark.integration
class TestProjectsApi:
    """Tests for /projects endpoints."""

    def test_create_and_get(self, api_client):
        project_id = _create_project(api_client, "Launch")

        response = api_client.get(f"/projects/{project_id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Launch"

    def test_unknown_project_is_404(self, api_client):
        response = api_client.get("/projects/404")

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_NOT_FOUND"

    def test_blank_name_is_rejected(self, api_client):
        response = api_client.post("/projects", json={"name": "  "})

        assert response.status_code == 422

    def test_update_project(self, api_client):
        project_id = _create_project(api_client)

        response = api_client.put(f"/projects/{project_id}", json={"description": "Relaunch"})

        assert response.status_code == 200
        assert response.json()["description"] == "Relaunch"

    def test_delete_project(self, api_client, project_tree):
        other_project = _create_project(api_client, "Other")
        api_client.post(f"/tasks/{project_tree['child']}/dependencies", json={"depends_on_id": project_tree["root"]})

        response = api_client.delete(f"/projects/{project_tree['project']}")

        assert response.status_code == 204
        assert api_client.get(f"/projects/{project_tree['project']}").status_code == 404
        assert api_client.get(f"/tasks/{project_tree['root']}").status_code == 404
        assert [project["id"] for project in api_client.get("/projects").json()] == [other_project]
        assert api_client.delete(f"/projects/{project_tree['project']}").status_code == 404

    def test_hierarchy(self, api_client, project_tree):
        response = api_client.get(f"/projects/{project_tree['project']}/hierarchy")

        assert response.status_code == 200
        assert [(row["name"], row["depth"]) for row in response.json()] == [
            ("Root", 0),
            ("Child", 1),
            ("Other", 0),
        ]

    def test_import(self, api_client, memory_db):
        body = {
            "name": "Legacy",
            "records": [
                {"name": "Phase", "outlineLevel": 1},
                {"name": "Step", "outlineLevel": 2},
                {"name": ""},
            ],
        }

        response = api_client.post("/projects/import", json=body)

        assert response.status_code == 201
        result = response.json()
        assert (result["attempted"], result["created"], result["linked"], result["failed"]) == (3, 2, 1, 1)
        tasks = api_client.get(f"/projects/{result['project_id']}/tasks").json()
        assert [task["name"] for task in tasks] == ["Phase", "Step"]


@pytest.mark.integration
class TestTimelineApi:
    """Tests for GET /projects/{id}/timeline."""

    def test_fixed_zoom(self, api_client, project_tree):
        response = api_client.get(f"/projects/{project_tree['project']}/timeline", params={"zoom": "days"})

        assert response.status_code == 200
        layout = response.json()
        assert layout["resolution"] == "days"
        assert layout["column_width"] == 30
        assert layout["total_width"] == 30 * len(layout["columns"])
        assert [row["name"] for row in layout["rows"]] == ["Root", "Child", "Other"]
        milestone = next(bar for bar in layout["bars"] if bar["task_id"] == project_tree["other"])
        assert milestone["is_milestone"] is True
        assert milestone["width"] == 0

    def test_collapsed_all(self, api_client, project_tree):
        response = api_client.get(
            f"/projects/{project_tree['project']}/timeline", params={"collapsed_all": "true"}
        )

        assert [row["name"] for row in response.json()["rows"]] == ["Root", "Other"]
        assert response.json()["expanded_ids"] == []

    def test_explicit_expanded_ids(self, api_client, project_tree):
        response = api_client.get(
            f"/projects/{project_tree['project']}/timeline", params={"expanded": [project_tree["root"]]}
        )

        assert [row["name"] for row in response.json()["rows"]] == ["Root", "Child", "Other"]

    def test_links_between_visible_rows(self, api_client, project_tree):
        api_client.post(
            f"/tasks/{project_tree['other']}/dependencies", json={"depends_on_id": project_tree["root"]}
        )

        layout = api_client.get(f"/projects/{project_tree['project']}/timeline").json()

        assert [(link["from_row"], link["to_row"]) for link in layout["links"]] == [(0, 2)]

    def test_unknown_zoom_is_400(self, api_client, project_tree):
        response = api_client.get(f"/projects/{project_tree['project']}/timeline", params={"zoom": "fortnight"})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_VALIDATION"

    def test_viewport_must_be_positive(self, api_client, project_tree):
        response = api_client.get(f"/projects/{project_tree['project']}/timeline", params={"viewport_width": 0})

        assert response.status_code == 422


@pytest.mark.integration
class TestTasksApi:
    """Tests for /tasks endpoints."""

    def test_reparent_into_descendant_is_409(self, api_client, project_tree):
        response = api_client.put(f"/tasks/{project_tree['root']}", json={"parent_id": project_tree["child"]})

        assert response.status_code == 409
        assert response.json()["code"] == "ERR_PARENT_CYCLE"

    def test_self_parent_is_400(self, api_client, project_tree):
        response = api_client.put(f"/tasks/{project_tree['child']}", json={"parent_id": project_tree["child"]})

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_INVALID_PARENT"

    def test_unknown_parent_on_create_is_400(self, api_client, project_tree):
        response = api_client.post(
            "/tasks", json={"project_id": project_tree["project"], "name": "Orphan", "parent_id": "9999"}
        )

        assert response.status_code == 400

    def test_task_in_unknown_project_is_404(self, api_client):
        response = api_client.post("/tasks", json={"project_id": "404", "name": "Lost"})

        assert response.status_code == 404

    def test_partial_update(self, api_client, project_tree):
        response = api_client.put(f"/tasks/{project_tree['child']}", json={"progress": 60})

        assert response.status_code == 200
        body = response.json()
        assert body["progress"] == 60
        assert body["parent_id"] == project_tree["root"]

    def test_delete(self, api_client, project_tree):
        response = api_client.delete(f"/tasks/{project_tree['root']}")

        assert response.status_code == 204
        assert api_client.get(f"/tasks/{project_tree['root']}").status_code == 404
        hierarchy = api_client.get(f"/projects/{project_tree['project']}/hierarchy").json()
        assert [(row["name"], row["depth"]) for row in hierarchy] == [("Child", 0), ("Other", 0)]

    def test_dependency_and_assignment_endpoints(self, api_client, project_tree):
        edge = api_client.post(
            f"/tasks/{project_tree['child']}/dependencies",
            json={"depends_on_id": project_tree["other"], "type": "start_to_start"},
        )
        assignment = api_client.post(
            f"/tasks/{project_tree['child']}/assignments", json={"user_id": "u9", "role": "reviewer"}
        )

        assert edge.status_code == 201
        assert edge.json()["type"] == "start_to_start"
        assert assignment.status_code == 201
        assert [a["user_id"] for a in api_client.get(f"/tasks/{project_tree['child']}/assignments").json()] == ["u9"]
        assert api_client.delete(f"/dependencies/{edge.json()['id']}").status_code == 204
        assert api_client.delete(f"/dependencies/{edge.json()['id']}").status_code == 404


@pytest.mark.integration
class TestRealtimeSocket:
    """Tests for the /ws endpoint."""

    def test_editing_start_is_echoed_to_the_editor(self, api_client):
        with api_client.websocket_connect("/ws?user_id=u1&user_name=Ana") as ws:
            ws.send_json({"action": "join", "projectId": "7"})
            ws.send_json({"action": "editing:start", "projectId": "7"})

            envelope = ws.receive_json()

        assert envelope["event"] == "presence:editing"
        assert envelope["channel"] == "project:7"
        assert envelope["payload"]["userName"] == "Ana"
        assert envelope["payload"]["isEditing"] is True

    def test_malformed_messages_get_errors(self, api_client):
        with api_client.websocket_connect("/ws?user_id=u1") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"error": "Message must be a JSON object"}

            ws.send_json({"action": "join"})
            assert ws.receive_json() == {"error": "projectId is required"}

            ws.send_json({"action": "dance", "projectId": "1"})
            assert ws.receive_json() == {"error": "Unknown action: dance"}

    def test_editors_endpoint(self, api_client):
        with api_client.websocket_connect("/ws?user_id=u1&user_name=Ana") as ws:
            ws.send_json({"action": "join", "projectId": "7"})
            ws.send_json({"action": "editing:start", "projectId": "7"})
            ws.receive_json()

            editors = api_client.get("/projects/7/editors").json()

        assert editors == [{"user_id": "u1", "user_name": "Ana", "client_id": editors[0]["client_id"]}]


@pytest.mark.integration
def test_health(api_client):
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"]["enabled"] is False
