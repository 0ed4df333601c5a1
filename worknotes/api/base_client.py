"""
Base API client with common functionality
"""

import asyncio
from abc import ABC
from typing import Optional, Dict, Any, List, Union
import httpx
from worknotes.utils.logger import logger
from worknotes.config.constants import MAX_RETRIES, RETRY_DELAY

JsonBody = Union[Dict[str, Any], List[Dict[str, Any]]]


class BaseAPIClient(ABC):
    """Base class for API clients with common functionality"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        max_retries: int = MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize base API client

        Args:
            base_url: Base URL for API
            timeout: Request timeout in seconds
            max_retries: Attempts per request
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.logger = logger

    async def _request(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[JsonBody] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """
        Make HTTP request with retry logic

        Args:
            method: HTTP method (GET, POST, DELETE)
            endpoint: API endpoint
            headers: Request headers
            params: Query parameters
            json_data: JSON body
            retries: Number of attempts (defaults to max_retries)

        Returns:
            Decoded JSON response, or an empty dict for empty bodies

        Raises:
            httpx.HTTPError: If request fails after all retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        retries = max(1, retries or self.max_retries)

        for attempt in range(retries):
            try:
                self.logger.debug(f"Request: {method} {url} (attempt {attempt + 1}/{retries})")

                response = await self.client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json_data,
                )

                self.logger.debug(f"Response status: {response.status_code}")
                if response.status_code >= 400:
                    self.logger.warning(f"Error response body: {response.text[:1000]}")

                response.raise_for_status()

                # Handle empty response (204 No Content or empty body)
                if response.status_code == 204 or not response.text.strip():
                    return {}

                try:
                    return response.json()
                except ValueError:
                    # If JSON parsing fails but we got 2xx, return empty dict
                    return {}

            except httpx.HTTPStatusError as e:
                # Client errors will not succeed on retry
                if e.response.status_code < 500 or attempt >= retries - 1:
                    self.logger.error(f"Request failed with status {e.response.status_code}: {method} {url}")
                    raise
                self.logger.warning(
                    f"Request failed with status {e.response.status_code}, "
                    f"retrying in {RETRY_DELAY * (attempt + 1)} seconds..."
                )
                await asyncio.sleep(RETRY_DELAY * (attempt + 1))

            except httpx.RequestError as e:
                if attempt >= retries - 1:
                    self.logger.error(f"Request error after {retries} attempts: {e}")
                    raise
                self.logger.warning(
                    f"Request error: {e}, retrying in {RETRY_DELAY * (attempt + 1)} seconds..."
                )
                await asyncio.sleep(RETRY_DELAY * (attempt + 1))

    async def get(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make GET request"""
        return await self._request("GET", endpoint, headers=headers, params=params)

    async def post(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[JsonBody] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Make POST request"""
        return await self._request(
            "POST", endpoint, headers=headers, params=params, json_data=json_data, retries=retries
        )

    async def delete(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make DELETE request"""
        return await self._request("DELETE", endpoint, headers=headers, params=params)

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
