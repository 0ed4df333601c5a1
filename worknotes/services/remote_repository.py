"""
Remote task repository

Rows are task-grained (one row per task) and scoped by user_id. Only the
content column is encrypted. Writes use full-replace semantics: delete every
row of the user, then upsert the whole collection in batches. This is not
transactional, so a failure between batches leaves the remote copy partially
written until the next successful save.
"""

from typing import Dict, List, Set
import httpx
from pydantic import ValidationError as PydanticValidationError
from worknotes.api.supabase_client import SupabaseClient
from worknotes.config.constants import BATCH_SIZE, TASKS_TABLE
from worknotes.models.task import TaskCollection, TaskRow
from worknotes.services.encryption import EncryptionCodec
from worknotes.utils.error_handler import RemoteStoreError
from worknotes.utils.logger import logger


class RemoteTaskRepository:
    """Reads and writes per-user task rows"""

    def __init__(self, client: SupabaseClient, codec: EncryptionCodec, batch_size: int = BATCH_SIZE):
        """
        Initialize repository

        Args:
            client: Supabase client authenticated as the user
            codec: Encryption codec for task content
            batch_size: Rows per insert request
        """
        self.client = client
        self.codec = codec
        self.batch_size = batch_size
        self.logger = logger

    async def fetch_tasks(self, user_id: str) -> TaskCollection:
        """
        Fetch a user's tasks with decryption

        Args:
            user_id: The user's id

        Returns:
            Task collection grouped by each row's date

        Raises:
            RemoteStoreError: If the remote store cannot be read
        """
        try:
            rows = await self.client.select(TASKS_TABLE, {"user_id": user_id})
        except httpx.HTTPStatusError as e:
            raise RemoteStoreError(f"Failed to load tasks: {e}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Failed to load tasks: {e}") from e

        collection: TaskCollection = {}
        for raw in rows:
            try:
                row = TaskRow.model_validate(raw)
            except PydanticValidationError as e:
                self.logger.warning(f"Skipping invalid task row {raw.get('id', 'unknown')}: {e.error_count()} error(s)")
                continue

            content = self.codec.decrypt_text(row.content, user_id)
            if self.codec.is_encrypted(content):
                self.logger.warning(f"Could not decrypt content of task {row.id}, keeping ciphertext")

            collection.setdefault(row.date, []).append(row.to_task(content))

        self.logger.debug(f"Fetched {len(rows)} task rows for user {user_id}")
        return collection

    def build_rows(self, collection: TaskCollection, user_id: str) -> List[Dict]:
        """
        Convert a collection to encrypted rows, skipping repeated task ids

        Args:
            collection: Tasks to convert
            user_id: Owning user id

        Returns:
            List of row dicts ready to insert
        """
        rows = []
        processed_ids: Set[str] = set()

        for tasks in collection.values():
            for task in tasks:
                if task.id in processed_ids:
                    self.logger.warning(f"Skipping duplicate task ID: {task.id}")
                    continue
                processed_ids.add(task.id)

                encrypted_content = self.codec.encrypt(task.content, user_id)
                row = TaskRow.from_task(
                    task,
                    user_id=user_id,
                    content=encrypted_content,
                    is_encrypted=self.codec.is_encrypted(encrypted_content),
                )
                rows.append(row.model_dump())

        return rows

    async def save_tasks(self, collection: TaskCollection, user_id: str) -> bool:
        """
        Replace a user's remote tasks with the given collection

        Args:
            collection: The tasks to save
            user_id: The user's id

        Returns:
            True if every request succeeded
        """
        rows = self.build_rows(collection, user_id)

        if not await self.delete_all_tasks(user_id):
            return False

        for i in range(0, len(rows), self.batch_size):
            batch = rows[i:i + self.batch_size]
            try:
                await self.client.upsert(TASKS_TABLE, batch)
            except httpx.HTTPError as e:
                self.logger.error(
                    f"Error syncing tasks batch {i // self.batch_size + 1} "
                    f"({len(batch)} rows), remote copy is partial: {e}"
                )
                return False

        self.logger.info(f"Synced {len(rows)} tasks for user {user_id}")
        return True

    async def delete_all_tasks(self, user_id: str) -> bool:
        """Delete every task row owned by the user"""
        try:
            await self.client.delete_rows(TASKS_TABLE, {"user_id": user_id})
            return True
        except httpx.HTTPError as e:
            self.logger.error(f"Error deleting old tasks: {e}")
            return False
