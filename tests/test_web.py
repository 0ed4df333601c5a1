"""
Tests for the web interface
"""

import pytest
import httpx
from fastapi.testclient import TestClient
from worknotes.main import WorknotesApp
from worknotes.web.main import create_app

USER_ID = "3f1c2b9e-8d4a-4c6e-9b2f-1a2b3c4d5e6f"


@pytest.fixture
def worknotes_app(tmp_path, mock_supabase_client):
    """Application objects over temporary storage and a mocked remote"""
    return WorknotesApp(
        storage_path=str(tmp_path / "local_storage.json"),
        supabase_client=mock_supabase_client,
        admin_client=mock_supabase_client,
    )


@pytest.fixture
def client(worknotes_app):
    """Test client with lifespan events"""
    with TestClient(create_app(worknotes_app)) as test_client:
        yield test_client


def test_health_check(client):
    """Test health endpoint"""
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_and_export_tasks(client, worknotes_app):
    """Test task listing and markdown download"""
    worknotes_app.task_manager.add_task("Buy milk", priority="high")
    active_date = worknotes_app.task_manager.active_date

    tasks = client.get("/api/tasks").json()
    assert tasks[active_date][0]["content"] == "Buy milk"
    assert tasks[active_date][0]["priority"] == "high"

    response = client.get("/api/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/markdown")
    assert "attachment" in response.headers["content-disposition"]
    assert ".md" in response.headers["content-disposition"]
    assert f"## {active_date}\n- [ ] Buy milk _(priority: high)_" in response.text


def test_import_markdown_file(client, worknotes_app):
    """Test uploading a markdown export"""
    markdown = b"## 2024-05-01\n- [ ] Imported task\n"

    response = client.post("/api/import", files={"file": ("tasks.md", markdown, "text/markdown")})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["task_count"] == 1
    contents = [t.content for tasks in worknotes_app.task_manager.collection.values() for t in tasks]
    assert "Imported task" in contents
    assert worknotes_app.storage.load_tasks() == worknotes_app.task_manager.collection


def test_import_rejects_other_files(client):
    """Test non-markdown uploads are refused"""
    response = client.post("/api/import", files={"file": ("tasks.txt", b"- [ ] Task", "text/plain")})

    assert response.json()["success"] is False


def test_import_without_tasks(client):
    """Test a markdown file without tasks"""
    response = client.post("/api/import", files={"file": ("notes.md", b"# Notes only", "text/markdown")})

    assert response.json() == {
        "message": "No valid tasks found in the imported file",
        "success": False,
        "task_count": 0,
    }


def test_delete_user_function(client, mock_supabase_client):
    """Test the account deletion function endpoint"""
    response = client.post("/functions/v1/delete_user", headers={"Authorization": "Bearer user-jwt"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    mock_supabase_client.admin_delete_user.assert_awaited_once_with(USER_ID)


def test_delete_user_function_unauthorized(client):
    """Test the function rejects requests without a token"""
    response = client.post("/functions/v1/delete_user")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_delete_user_function_step_failure(client, mock_supabase_client):
    """Test a failed step is reported with its message"""
    mock_supabase_client.delete_rows.side_effect = [None, httpx.ConnectError("unreachable")]

    response = client.post("/functions/v1/delete_user", headers={"Authorization": "Bearer user-jwt"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to delete profile"}


def test_delete_user_function_not_configured(tmp_path):
    """Test the function without a service-role client"""
    worknotes = WorknotesApp(storage_path=str(tmp_path / "local_storage.json"))
    worknotes.account_service = None

    with TestClient(create_app(worknotes)) as test_client:
        response = test_client.post("/functions/v1/delete_user", headers={"Authorization": "Bearer user-jwt"})

    assert response.status_code == 500


def test_session_sign_in_and_out(client, worknotes_app, mock_supabase_client):
    """Test signing in and out through the API"""
    missing = client.post("/api/session")
    assert missing.status_code == 401

    response = client.post("/api/session", headers={"Authorization": "Bearer user-jwt"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "user_id": USER_ID}
    assert worknotes_app.sync_service.user_id == USER_ID
    mock_supabase_client.set_access_token.assert_called_with("user-jwt")

    response = client.delete("/api/session")
    assert response.status_code == 200
    assert worknotes_app.sync_service.user_id is None
    mock_supabase_client.sign_out.assert_awaited_once_with("user-jwt")


def test_delete_account_requires_session(client):
    """Test account deletion when signed out"""
    response = client.delete("/api/account")

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_delete_account(client, worknotes_app, mock_supabase_client):
    """Test deleting the signed-in account"""
    client.post("/api/session", headers={"Authorization": "Bearer user-jwt"})

    response = client.delete("/api/account")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert worknotes_app.sync_service.auth is None
    mock_supabase_client.invoke_function.assert_awaited_once()

def test_session_sign_in_without_user(client, mock_supabase_client):
    """Test an auth response without a user id is reported, not raised"""
    mock_supabase_client.get_user.return_value = {}

    response = client.post("/api/session", headers={"Authorization": "Bearer user-jwt"})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_add_and_edit_task(client, worknotes_app):
    """Test adding a task and changing its status, content and priority"""
    response = client.post("/api/tasks", data={"text": "Buy milk"})
    assert response.status_code == 200
    task_id = response.json()["task"]["id"]

    response = client.post(f"/api/tasks/{task_id}/status", data={"is_completed": "true"})
    assert response.json()["task"]["isCompleted"] is True

    response = client.post(f"/api/tasks/{task_id}/content", data={"content": "[x] Buy oat milk"})
    assert response.json()["task"]["content"] == "Buy oat milk"

    response = client.post(f"/api/tasks/{task_id}/priority", data={"priority": "high"})
    assert response.json()["task"]["priority"] == "high"

    stored = worknotes_app.storage.load_tasks()
    assert stored == worknotes_app.task_manager.collection


def test_add_task_date_command(client, worknotes_app):
    """Test /DD-MM-YY switches the active date"""
    response = client.post("/api/tasks", data={"text": "/15-03-24"})

    assert response.json() == {"success": True, "active_date": "2024-03-15"}
    assert worknotes_app.task_manager.collection == {}

    task = client.post("/api/tasks", data={"text": "Dentist"}).json()["task"]
    assert task["date"] == "2024-03-15"


def test_task_routes_reject_bad_input(client):
    """Test validation errors and unknown tasks"""
    assert client.post("/api/tasks", data={"text": "   "}).status_code == 400
    assert client.post("/api/tasks", data={"text": "Task", "priority": "urgent"}).status_code == 400
    assert client.post("/api/tasks/missing/status", data={"is_completed": "true"}).status_code == 404
    assert client.delete("/api/tasks/missing").status_code == 404

    task_id = client.post("/api/tasks", data={"text": "Task"}).json()["task"]["id"]
    assert client.post(f"/api/tasks/{task_id}/content", data={"content": "   "}).status_code == 400
    assert client.post(f"/api/tasks/{task_id}/move", data={"to_date": "tomorrow"}).status_code == 400


def test_move_reorder_and_delete(client, worknotes_app):
    """Test moving, reordering and deleting through the API"""
    first = client.post("/api/tasks", data={"text": "First"}).json()["task"]
    client.post("/api/tasks", data={"text": "Second"})
    date = first["date"]

    response = client.post("/api/tasks/reorder", data={"date": date, "from_index": 0, "to_index": 1})
    assert [t["content"] for t in response.json()["tasks"]] == ["Second", "First"]

    response = client.post(f"/api/tasks/{first['id']}/move", data={"to_date": "2099-01-01"})
    assert response.json()["task"]["date"] == "2099-01-01"

    response = client.delete(f"/api/tasks/{first['id']}")
    assert response.json() == {"success": True}
    assert "2099-01-01" not in worknotes_app.task_manager.collection


def test_undo_redo(client, worknotes_app):
    """Test undo and redo through the API"""
    assert client.post("/api/undo").json()["success"] is False

    client.post("/api/tasks", data={"text": "Task"})
    assert client.post("/api/undo").json() == {"success": True}
    assert worknotes_app.task_manager.collection == {}
    assert worknotes_app.storage.load_tasks() == {}

    assert client.post("/api/redo").json() == {"success": True}
    assert len(worknotes_app.task_manager.collection) == 1
    assert client.post("/api/redo").json()["success"] is False
