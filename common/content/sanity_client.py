"""
Async client for the Sanity content repository query API.

Runs GROQ queries over HTTP and returns the `result` payload. The client
is deliberately thin: it knows nothing about posts, videos or
notifications, only how to talk to the query endpoint.

Example:
    client = SanityClient(project_id="abc123", dataset="production")
    posts = await client.fetch(
        '*[_type == "post" && author._ref == $userId]{_id, title}',
        {"userId": user_id},
    )
"""

import logging
from typing import Any, Dict, Optional

import httpx

from common.utils.exceptions import ContentRepositoryException

logger = logging.getLogger(__name__)


class SanityClient:
    """Runs GROQ queries against a Sanity dataset."""

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        api_version: str = "2023-03-01",
        token: Optional[str] = None,
        use_cdn: bool = False,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize SanityClient.

        Args:
            project_id: Sanity project ID
            dataset: Dataset name
            api_version: Dated API version, without the leading "v"
            token: Optional read token (required for private datasets)
            use_cdn: Query the cached CDN host instead of the live API
            timeout: Per-request timeout in seconds
            http_client: Optional shared httpx client (tests inject a mock transport)
        """
        self._project_id = project_id
        self._dataset = dataset
        self._api_version = api_version.lstrip("v")
        self._token = token
        self._timeout = timeout
        self._http_client = http_client

        host = "apicdn.sanity.io" if use_cdn else "api.sanity.io"
        self._base_url = f"https://{project_id}.{host}/v{self._api_version}"

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def dataset(self) -> str:
        return self._dataset

    @property
    def query_url(self) -> str:
        """Full URL of the dataset's query endpoint."""
        return f"{self._base_url}/data/query/{self._dataset}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a GROQ query.

        Args:
            query: GROQ query string
            params: Query parameters, referenced in the query as $name

        Returns:
            The query's `result` value (shape depends on the query)

        Raises:
            ContentRepositoryException: On transport errors, non-2xx status,
                or a response body without a `result` field
        """
        payload = {"query": query, "params": params or {}}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.query_url,
                    headers=self._headers(),
                    json=payload,
                    timeout=self._timeout,
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.query_url,
                        headers=self._headers(),
                        json=payload,
                        timeout=self._timeout,
                    )
        except httpx.HTTPError as e:
            logger.error(f"Sanity request error: {e}")
            raise ContentRepositoryException(
                message="Failed to connect to content repository",
            ) from e

        if response.status_code != 200:
            logger.error(
                f"Sanity API error: {response.status_code} - {response.text}"
            )
            raise ContentRepositoryException(
                message="Content repository query failed",
                details={"status": response.status_code},
            )

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Sanity returned a non-JSON body: {e}")
            raise ContentRepositoryException(
                message="Content repository returned an invalid response",
            ) from e

        if not isinstance(body, dict) or "result" not in body:
            logger.error("Sanity response missing 'result' field")
            raise ContentRepositoryException(
                message="Content repository returned an invalid response",
            )

        logger.debug(f"Sanity query completed in {body.get('ms', '?')}ms")
        return body["result"]
