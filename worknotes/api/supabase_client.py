"""
Supabase API client (PostgREST tables, GoTrue auth, edge functions)
"""

from typing import Optional, Dict, Any, List
import httpx
from worknotes.api.base_client import BaseAPIClient
from worknotes.config.settings import settings
from worknotes.utils.logger import logger


class SupabaseClient(BaseAPIClient):
    """Client for a Supabase project"""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Supabase client

        Args:
            url: Project URL (defaults to settings)
            api_key: Anon or service-role key (defaults to the anon key)
            access_token: User JWT; requests fall back to the api key when absent
            max_retries: Attempts per request
            transport: Optional httpx transport (used by tests)
        """
        kwargs: Dict[str, Any] = {"transport": transport}
        if max_retries is not None:
            kwargs["max_retries"] = max_retries
        super().__init__(url or settings.SUPABASE_URL, **kwargs)
        self.api_key = api_key or settings.SUPABASE_ANON_KEY
        self.access_token = access_token
        self.logger = logger

    def set_access_token(self, access_token: Optional[str]):
        """Switch the user session used for row-level requests"""
        self.access_token = access_token

    def _get_headers(self, access_token: Optional[str] = None, prefer: Optional[str] = None) -> Dict[str, str]:
        """Get request headers with authentication"""
        token = access_token or self.access_token or self.api_key
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    @staticmethod
    def _eq_filters(filters: Dict[str, Any]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    # ---- tables ----

    async def select(self, table: str, filters: Dict[str, Any], columns: str = "*") -> List[Dict[str, Any]]:
        """
        Select rows matching equality filters

        Args:
            table: Table name
            filters: Column -> value equality filters
            columns: Column list

        Returns:
            List of rows
        """
        params = {"select": columns, **self._eq_filters(filters)}
        result = await self.get(f"/rest/v1/{table}", headers=self._get_headers(), params=params)
        return result if isinstance(result, list) else []

    async def upsert(self, table: str, rows: List[Dict[str, Any]], on_conflict: str = "id") -> None:
        """Insert rows in one request, updating rows whose key already exists"""
        await self.post(
            f"/rest/v1/{table}",
            headers=self._get_headers(prefer="resolution=merge-duplicates,return=minimal"),
            params={"on_conflict": on_conflict},
            json_data=rows,
        )

    async def delete_rows(self, table: str, filters: Dict[str, Any]) -> None:
        """Delete rows matching equality filters"""
        if not filters:
            raise ValueError("Refusing to delete without filters")
        await self.delete(
            f"/rest/v1/{table}",
            headers=self._get_headers(prefer="return=minimal"),
            params=self._eq_filters(filters),
        )

    # ---- auth ----

    async def get_user(self, jwt: str) -> Dict[str, Any]:
        """Resolve a user JWT to the auth user record"""
        return await self.get("/auth/v1/user", headers=self._get_headers(access_token=jwt))

    async def sign_out(self, jwt: str) -> None:
        """Invalidate a user session"""
        await self.post("/auth/v1/logout", headers=self._get_headers(access_token=jwt), retries=1)

    async def admin_delete_user(self, user_id: str) -> None:
        """Delete an auth identity (requires the service-role key)"""
        await self.delete(f"/auth/v1/admin/users/{user_id}", headers=self._get_headers(access_token=self.api_key))

    # ---- edge functions ----

    async def invoke_function(self, name: str, jwt: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke an edge function as the given user"""
        return await self.post(
            f"/functions/v1/{name}",
            headers=self._get_headers(access_token=jwt),
            json_data=body or {},
            retries=1,
        )
