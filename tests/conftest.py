"""
Pytest configuration and fixtures
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from worknotes.api.supabase_client import SupabaseClient
from worknotes.models.task import AuthSession, Task
from worknotes.services.encryption import EncryptionCodec
from worknotes.services.local_storage import LocalStorage, TaskStorage
from worknotes.services.remote_repository import RemoteTaskRepository
from worknotes.services.sync_service import TaskSyncService
from worknotes.services.task_manager import TaskManager
from worknotes.utils.ids import generate_id

USER_ID = "3f1c2b9e-8d4a-4c6e-9b2f-1a2b3c4d5e6f"


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults"""
    def _make_task(
        content="Task",
        date="2024-01-01",
        is_completed=False,
        created_at="2024-01-01T09:00:00+00:00",
        completed_at=None,
        priority="medium",
        task_id=None,
    ):
        return Task(
            id=task_id or generate_id(),
            content=content,
            is_completed=is_completed,
            created_at=created_at,
            completed_at=completed_at,
            priority=priority,
            date=date,
        )
    return _make_task


@pytest.fixture
def codec():
    """Encryption codec with a test secret"""
    return EncryptionCodec("test-secret")


@pytest.fixture
def local_storage(tmp_path):
    """Local storage with temporary file"""
    return LocalStorage(str(tmp_path / "local_storage.json"))


@pytest.fixture
def task_storage(local_storage, codec):
    """Task storage over the temporary local storage"""
    return TaskStorage(local_storage, codec)


@pytest.fixture
def auth():
    """Signed-in session"""
    return AuthSession(user_id=USER_ID, access_token="user-jwt")


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client"""
    client = MagicMock(spec=SupabaseClient)
    client.select = AsyncMock(return_value=[])
    client.upsert = AsyncMock(return_value=None)
    client.delete_rows = AsyncMock(return_value=None)
    client.get_user = AsyncMock(return_value={"id": USER_ID})
    client.sign_out = AsyncMock(return_value=None)
    client.admin_delete_user = AsyncMock(return_value=None)
    client.invoke_function = AsyncMock(return_value={"success": True})
    return client


@pytest.fixture
def mock_repository():
    """Mock remote repository"""
    repository = MagicMock(spec=RemoteTaskRepository)
    repository.fetch_tasks = AsyncMock(return_value={})
    repository.save_tasks = AsyncMock(return_value=True)
    return repository


@pytest.fixture
def task_manager():
    """Task manager with today fixed to 2024-01-02"""
    return TaskManager(active_date="2024-01-02")


@pytest.fixture
def sync_service(task_manager, task_storage, mock_repository):
    """Sync service with mocked remote repository"""
    return TaskSyncService(
        task_manager,
        task_storage,
        mock_repository,
        fetch_timeout=0.5,
        persist_timeout=0.5,
    )
