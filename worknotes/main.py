"""
Main application entry point
"""

from typing import Optional
import httpx
from worknotes.api.supabase_client import SupabaseClient
from worknotes.config.settings import settings
from worknotes.models.task import AuthSession
from worknotes.services.account_service import AccountDeletionService, delete_user_account
from worknotes.services.encryption import EncryptionCodec
from worknotes.services.local_storage import LocalStorage, TaskStorage
from worknotes.services.remote_repository import RemoteTaskRepository
from worknotes.services.sync_service import TaskSyncService
from worknotes.services.task_manager import TaskManager
from worknotes.utils.logger import logger


class WorknotesApp:
    """Application objects for one task-tracking session"""

    def __init__(
        self,
        storage_path: Optional[str] = None,
        supabase_client: Optional[SupabaseClient] = None,
        admin_client: Optional[SupabaseClient] = None,
    ):
        """
        Initialize application

        Args:
            storage_path: Local storage file (defaults to settings)
            supabase_client: Client for user-scoped remote access; built from
                settings when the remote store is configured
            admin_client: Service-role client for account deletion; built
                from settings when the service-role key is configured
        """
        self.codec = EncryptionCodec(settings.ENCRYPTION_SECRET)
        self.storage = TaskStorage(LocalStorage(storage_path or settings.LOCAL_STORAGE_PATH), self.codec)
        self.task_manager = TaskManager()

        if supabase_client is None and settings.remote_enabled():
            supabase_client = SupabaseClient()
        self.supabase_client = supabase_client

        if admin_client is None and settings.remote_enabled() and settings.SUPABASE_SERVICE_ROLE_KEY:
            admin_client = SupabaseClient(api_key=settings.SUPABASE_SERVICE_ROLE_KEY)
        self.account_service = AccountDeletionService(admin_client) if admin_client else None
        self.admin_client = admin_client

        repository = RemoteTaskRepository(supabase_client, self.codec) if supabase_client else None
        self.sync_service = TaskSyncService(self.task_manager, self.storage, repository)
        self.logger = logger

    async def start(self):
        """Load tasks and start saving on every change"""
        result = await self.sync_service.load()
        self.sync_service.enable_autosave()
        self.logger.info(f"Loaded tasks (carried forward: {result.carried_forward})")

    def _require_remote(self) -> SupabaseClient:
        if self.supabase_client is None:
            raise ValueError("Remote store is not configured")
        return self.supabase_client

    async def sign_in(self, access_token: str) -> AuthSession:
        """
        Start a signed-in session from an auth provider token

        The first load after sign-in merges the local cache with the remote copy.
        """
        client = self._require_remote()
        user = await client.get_user(access_token)
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise ValueError("Auth provider returned no user for the access token")
        auth = AuthSession(user_id=user_id, access_token=access_token)
        client.set_access_token(access_token)
        await self.sync_service.load(auth)
        self.logger.info(f"Signed in as {auth.user_id}")
        return auth

    async def sign_out(self):
        """End the signed-in session and continue with local tasks only"""
        client = self._require_remote()
        auth = self.sync_service.auth
        if auth is not None:
            try:
                await client.sign_out(auth.access_token)
            except httpx.HTTPError as e:
                self.logger.warning(f"Sign out request failed: {e}")
        self.sync_service.sign_out()
        client.set_access_token(None)
        await self.sync_service.load(None)

    async def delete_account(self) -> bool:
        """Delete the signed-in user's account and sign out"""
        client = self._require_remote()
        deleted = await delete_user_account(client, self.sync_service)
        client.set_access_token(None)
        return deleted

    async def stop(self):
        """Flush pending changes and close clients"""
        self.logger.info("Stopping...")
        self.sync_service.disable_autosave()
        await self.sync_service.save("shutdown")
        for client in (self.supabase_client, self.admin_client):
            if client is not None:
                await client.close()
        self.logger.info("Stopped")


def main():
    """Main entry point"""
    import uvicorn
    from worknotes.web.main import app

    uvicorn.run(app, host="0.0.0.0", port=settings.WEB_PORT)


if __name__ == "__main__":
    main()
