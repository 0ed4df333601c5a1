"""
Account deletion

The server side runs with the service-role key and deletes, in order, the
user's task rows, profile row and auth identity, stopping at the first
failure. The client side calls it with the user's token and only signs out
once deletion has fully succeeded, so a failed deletion can be retried.
"""

from typing import Any, Dict
import httpx
from worknotes.api.supabase_client import SupabaseClient
from worknotes.config.constants import DELETE_USER_FUNCTION, PROFILES_TABLE, TASKS_TABLE
from worknotes.services.sync_service import TaskSyncService
from worknotes.utils.error_handler import AccountDeletionError
from worknotes.utils.logger import logger


class AccountDeletionService:
    """Privileged account deletion (service-role client)"""

    def __init__(self, admin_client: SupabaseClient):
        """
        Initialize account deletion service

        Args:
            admin_client: Supabase client holding the service-role key
        """
        self.client = admin_client
        self.logger = logger

    async def authenticate(self, jwt: str) -> str:
        """
        Resolve a user JWT to a user id

        Raises:
            AccountDeletionError: With status 401 if the token is invalid
        """
        if not jwt:
            raise AccountDeletionError("Unauthorized", step="auth", status_code=401)
        try:
            user = await self.client.get_user(jwt)
        except httpx.HTTPError as e:
            self.logger.warning(f"Token validation failed: {e}")
            raise AccountDeletionError("Unauthorized", step="auth", status_code=401) from e

        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AccountDeletionError("Unauthorized", step="auth", status_code=401)
        return user_id

    async def delete_user(self, jwt: str) -> str:
        """
        Delete all data and the auth identity of the token's user

        Args:
            jwt: The user's access token

        Returns:
            The deleted user's id

        Raises:
            AccountDeletionError: Naming the step that failed; later steps are not run
        """
        user_id = await self.authenticate(jwt)
        self.logger.info(f"Deleting account {user_id}")

        try:
            await self.client.delete_rows(TASKS_TABLE, {"user_id": user_id})
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to delete tasks for {user_id}: {e}")
            raise AccountDeletionError("Failed to delete tasks", step="tasks") from e

        try:
            await self.client.delete_rows(PROFILES_TABLE, {"id": user_id})
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to delete profile for {user_id}: {e}")
            raise AccountDeletionError("Failed to delete profile", step="profile") from e

        try:
            await self.client.admin_delete_user(user_id)
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to delete auth user {user_id}: {e}")
            raise AccountDeletionError("Failed to delete auth user", step="auth_user") from e

        self.logger.info(f"Account {user_id} deleted")
        return user_id


def _error_message(error: httpx.HTTPStatusError) -> str:
    try:
        body: Dict[str, Any] = error.response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return "Failed to delete account"


async def delete_user_account(client: SupabaseClient, sync_service: TaskSyncService) -> bool:
    """
    Delete the signed-in user's account, then sign out

    Args:
        client: Supabase client (anon key)
        sync_service: Session sync service holding the auth session

    Returns:
        True once the account is deleted and the session is closed

    Raises:
        AccountDeletionError: If not signed in or deletion failed; the
            session is left signed in so the caller can retry
    """
    auth = sync_service.auth
    if auth is None:
        raise AccountDeletionError("Not authenticated", step="auth", status_code=401)

    try:
        result = await client.invoke_function(DELETE_USER_FUNCTION, auth.access_token, {"user_id": auth.user_id})
    except httpx.HTTPStatusError as e:
        message = _error_message(e)
        logger.error(f"delete_user function error: {message}")
        raise AccountDeletionError(message, step="function", status_code=e.response.status_code) from e
    except httpx.HTTPError as e:
        logger.error(f"Error calling delete_user function: {e}")
        raise AccountDeletionError("Failed to delete account", step="function") from e

    if isinstance(result, dict) and result.get("error"):
        raise AccountDeletionError(str(result["error"]), step="function")

    try:
        await client.sign_out(auth.access_token)
    except httpx.HTTPStatusError as e:
        # The session is already invalid once the identity is gone
        if e.response.status_code not in (401, 403):
            logger.error(f"Error during sign out after deletion: {e}")
            raise AccountDeletionError("Account deleted but sign out failed", step="sign_out") from e
    except httpx.HTTPError as e:
        logger.warning(f"Sign out request failed after deletion: {e}")

    sync_service.storage.clear_tasks()
    sync_service.task_manager.reset({})
    sync_service.sign_out()
    logger.info(f"Account {auth.user_id} deleted and signed out")
    return True
