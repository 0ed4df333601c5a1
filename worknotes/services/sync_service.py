"""
Task sync service

Coordinates the task manager with local and remote persistence:

- load: local cache first, then the remote copy when signed in (merged with
  the local cache on the first load after sign-in), then carry-forward.
- save: always local; remote only when signed in and the manager revision
  moved past the last synced revision.

Remote calls run under a timeout, and a newer call of the same kind cancels
the one in flight. Timed-out, cancelled or failed remote calls count as
"no result" and never affect local state. Saves are not serialized: with
full-replace writes the last completed save wins.
"""

import asyncio
from typing import Any, Awaitable, Dict, Optional
from worknotes.config.settings import settings
from worknotes.models.response import ImportResult, SyncResult
from worknotes.models.task import AuthSession, TaskCollection
from worknotes.services.carry_forward import carry_forward, has_carried_tasks
from worknotes.services.local_storage import TaskStorage
from worknotes.services.markdown import count_tasks, markdown_to_tasks, tasks_to_markdown
from worknotes.services.merge import merge_imported_tasks, merge_tasks
from worknotes.services.remote_repository import RemoteTaskRepository
from worknotes.services.task_manager import TaskManager
from worknotes.utils.date_utils import get_today_date
from worknotes.utils.ids import ensure_valid_ids
from worknotes.utils.logger import logger

# Sentinel for a remote call that produced no usable result
NO_RESULT = object()


class TaskSyncService:
    """Keeps the session's tasks in sync with local and remote storage"""

    def __init__(
        self,
        task_manager: TaskManager,
        storage: TaskStorage,
        repository: Optional[RemoteTaskRepository] = None,
        fetch_timeout: float = settings.REMOTE_FETCH_TIMEOUT,
        persist_timeout: float = settings.REMOTE_PERSIST_TIMEOUT,
    ):
        """
        Initialize sync service

        Args:
            task_manager: Session task manager
            storage: Local task storage
            repository: Remote repository (None disables remote sync)
            fetch_timeout: Seconds before a remote fetch counts as no result
            persist_timeout: Seconds before a remote save counts as failed
        """
        self.task_manager = task_manager
        self.storage = storage
        self.repository = repository
        self.fetch_timeout = fetch_timeout
        self.persist_timeout = persist_timeout
        self.auth: Optional[AuthSession] = None
        self.synced_revision: Optional[int] = None
        self.is_loading = False
        self._last_user_id: Optional[str] = None
        self._initial_sync = True
        # Remote writes wait until the remote copy has been read once
        self._remote_loaded = False
        self._inflight: Dict[str, asyncio.Task] = {}
        self._autosave_listener = None
        self.logger = logger

    @property
    def user_id(self) -> Optional[str]:
        return self.auth.user_id if self.auth else None

    @property
    def remote_enabled(self) -> bool:
        return self.repository is not None and self.auth is not None

    async def _run_latest(self, kind: str, coro: Awaitable[Any], timeout: float) -> Any:
        """
        Run a remote call, cancelling any earlier call of the same kind

        Returns:
            The call's result, or NO_RESULT if it failed, timed out or was
            superseded by a newer call
        """
        previous = self._inflight.get(kind)
        if previous is not None and not previous.done():
            self.logger.debug(f"Cancelling superseded remote {kind}")
            previous.cancel()

        task = asyncio.ensure_future(coro)
        self._inflight[kind] = task
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._inflight.get(kind) is task:
                del self._inflight[kind]

        if not done:
            task.cancel()
            self.logger.warning(f"Remote {kind} timed out after {timeout}s")
            return NO_RESULT
        if task.cancelled():
            self.logger.debug(f"Remote {kind} was superseded")
            return NO_RESULT

        error = task.exception()
        if error is not None:
            self.logger.error(f"Remote {kind} failed: {error}")
            return NO_RESULT
        return task.result()

    # ---- load ----

    async def load(self, auth: Optional[AuthSession] = None, today: Optional[str] = None) -> SyncResult:
        """
        Load tasks for the session and carry uncompleted tasks forward

        Args:
            auth: Authenticated session, or None when signed out
            today: Carry-forward target (defaults to today)

        Returns:
            SyncResult describing what happened
        """
        today = today or get_today_date()
        self.is_loading = True
        self.auth = auth
        result = SyncResult()

        try:
            user_changed = self.user_id != self._last_user_id
            self._last_user_id = self.user_id

            local_tasks = self.storage.load_tasks(self.user_id)
            if user_changed and self.user_id and not local_tasks:
                # Cache written while signed out is under the anonymous key
                local_tasks = self.storage.load_tasks(None)
                if local_tasks:
                    self.logger.info(f"Reconciling {count_tasks(local_tasks)} signed-out local tasks")
            loaded = local_tasks
            from_remote = False
            self._remote_loaded = False

            if self.remote_enabled:
                remote_tasks = await self._run_latest(
                    "fetch", self.repository.fetch_tasks(self.user_id), self.fetch_timeout
                )
                self._remote_loaded = remote_tasks is not NO_RESULT
                if not self._remote_loaded:
                    self.logger.warning("Falling back to local tasks")
                elif user_changed or self._initial_sync:
                    loaded = merge_tasks(local_tasks, remote_tasks)
                    self._initial_sync = False
                    result.merged = True
                    self.logger.info(
                        f"Merged {count_tasks(local_tasks)} local and {count_tasks(remote_tasks)} remote tasks"
                    )
                else:
                    loaded = remote_tasks
                    from_remote = True
            else:
                self._initial_sync = True

            sanitized = ensure_valid_ids(loaded)
            updated = carry_forward(sanitized, today)
            self.task_manager.reset(updated)

            if updated is not sanitized:
                result.carried_forward = True
                if has_carried_tasks(updated, today):
                    self.logger.info("Uncompleted tasks moved to today")
            if result.carried_forward or result.merged:
                result.local_saved = self.storage.save_tasks(updated, self.user_id)

            # Remote already holds exactly what was loaded
            if from_remote and updated is loaded:
                self.synced_revision = self.task_manager.revision
            else:
                self.synced_revision = None
        finally:
            self.is_loading = False

        if self.remote_enabled and self._remote_loaded and self.synced_revision is None:
            result.remote_synced = await self._sync_remote("load")

        return result

    # ---- save ----

    async def save(self, source: str = "auto") -> SyncResult:
        """
        Save tasks locally and, when signed in and changed, remotely

        Args:
            source: What triggered the save (for logs)

        Returns:
            SyncResult; remote_synced is None when no remote write happened
        """
        if self.is_loading:
            return SyncResult(local_saved=False)

        result = SyncResult(local_saved=self.storage.save_tasks(self.task_manager.collection, self.user_id))

        if not self.remote_enabled or not self._remote_loaded:
            return result
        if self.task_manager.revision == self.synced_revision:
            return result

        result.remote_synced = await self._sync_remote(source)
        return result

    async def _sync_remote(self, source: str) -> bool:
        revision = self.task_manager.revision
        collection = self.task_manager.collection
        self.logger.debug(f"[SYNC] Syncing revision {revision} (source: {source})")

        success = await self._run_latest(
            "persist", self.repository.save_tasks(collection, self.user_id), self.persist_timeout
        )
        if success is NO_RESULT or not success:
            self.logger.warning(f"[SYNC] Failed to sync tasks (source: {source})")
            return False

        self.synced_revision = revision
        return True

    def enable_autosave(self):
        """Schedule a save after every change to the task collection"""
        if self._autosave_listener is not None:
            return

        def schedule_save(collection: TaskCollection, revision: int):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self.logger.debug("No running event loop, autosave skipped")
                return
            loop.create_task(self.save("auto"))

        self._autosave_listener = self.task_manager.subscribe(schedule_save)

    def disable_autosave(self):
        if self._autosave_listener is not None:
            self.task_manager.unsubscribe(self._autosave_listener)
            self._autosave_listener = None

    # ---- markdown ----

    def export_markdown(self) -> str:
        return tasks_to_markdown(self.task_manager.collection)

    def import_markdown(self, markdown: str) -> ImportResult:
        """
        Import tasks from markdown, merging them into the current tasks

        Args:
            markdown: Markdown text

        Returns:
            ImportResult with a user-facing message
        """
        try:
            imported = markdown_to_tasks(markdown)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Import error: {e}")
            return ImportResult(success=False, message="Error importing tasks. Invalid file format.")

        task_count = count_tasks(imported)
        if task_count == 0:
            return ImportResult(success=False, message="No valid tasks found in the imported file")

        self.task_manager.replace(merge_imported_tasks(self.task_manager.collection, imported))
        return ImportResult(message=f"Successfully imported {task_count} tasks", task_count=task_count)

    # ---- session ----

    def sign_out(self):
        """Drop the session capability; local tasks stay available"""
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self.auth = None
        self.synced_revision = None
        self._remote_loaded = False
