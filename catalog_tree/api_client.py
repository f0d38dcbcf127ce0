"""
HTTP client module for the catalog backend API.

Provides the fetch gateway used by the navigation tree: four read-only list
queries (domains, technologies of a domain, tutorials of a technology,
lessons of a tutorial). Every failure is surfaced as ``CatalogFetchError``;
retries with exponential backoff are handled here and never leak into the
tree cache.
"""

import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import Settings, settings as default_settings
from .domain.entities import (
    CatalogRecord,
    Domain,
    Lesson,
    Level,
    Technology,
    Tutorial,
    record_from_payload,
)
from .domain.exceptions import CatalogFetchError, RecordValidationError
from .logging_config import get_logger, get_request_id
from .metrics import track_catalog_fetch

logger = get_logger(__name__)

# Keys under which the backend may wrap a list response
_ENVELOPE_KEYS = ("data", "domains", "technologies", "tutorials", "lessons", "items")


class CatalogGateway(Protocol):
    """The four list queries the navigation tree depends on."""

    async def list_domains(self, **filters: Any) -> List[Domain]:
        ...

    async def list_technologies(self, domain_id: str, **filters: Any) -> List[Technology]:
        ...

    async def list_tutorials(self, technology_id: str, **filters: Any) -> List[Tutorial]:
        ...

    async def list_lessons(self, tutorial_id: str, **filters: Any) -> List[Lesson]:
        ...


async def fetch_children(
    gateway: CatalogGateway,
    level: Optional[Level],
    parent_id: Optional[str] = None,
) -> Sequence[CatalogRecord]:
    """
    Fetch the children of a node through the matching list query.

    Args:
        gateway: Source of catalog data
        level: Level of the parent node, None for the root domain list
        parent_id: Id of the parent node (ignored for the root)

    Returns:
        The child records in server order

    Raises:
        CatalogFetchError: If the query fails
        ValueError: If ``level`` is a leaf level
    """
    if level is None:
        return await gateway.list_domains()
    if level is Level.DOMAIN:
        return await gateway.list_technologies(parent_id)
    if level is Level.TECHNOLOGY:
        return await gateway.list_tutorials(parent_id)
    if level is Level.TUTORIAL:
        return await gateway.list_lessons(parent_id)
    raise ValueError(f"{level.value} nodes have no children")


def _is_retryable(error: BaseException) -> bool:
    """Transport failures and 5xx responses are worth another attempt."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, (httpx.TransportError, TimeoutError))


def unwrap_list(body: Any) -> Optional[List[Any]]:
    """
    Extract the record list from a response body.

    The backend returns either a bare list or an object wrapping the list
    (``{"data": [...]}``, ``{"tutorials": [...]}``, or one level deeper as
    ``{"data": {"tutorials": [...]}}``).

    Returns:
        The list, or None if the body has no recognisable list
    """
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return None
    for key in _ENVELOPE_KEYS:
        value = body.get(key)
        if isinstance(value, list):
            return value
    for key in _ENVELOPE_KEYS:
        value = body.get(key)
        if isinstance(value, dict):
            nested = unwrap_list(value)
            if nested is not None:
                return nested
    return None


class CatalogServiceClient:
    """
    Client for the catalog backend's list endpoints.

    Uses a persistent HTTP client with connection pooling. All list methods
    are async and either return records in server order or raise
    ``CatalogFetchError``.

    Attributes:
        base_url: Base URL of the catalog API (including the ``/api/v1`` prefix)
        timeout: Request timeout in seconds
        max_retries: Extra attempts made for retryable failures
        _client: Persistent httpx.AsyncClient with connection pooling
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize catalog service client.

        Args:
            base_url: Base URL of the catalog API (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            max_retries: Retry attempts for retryable failures (defaults to settings)
            settings: Settings instance to read defaults from
            transport: Optional httpx transport, used to stub the backend
        """
        config = settings or default_settings
        self.base_url = (base_url or config.CATALOG_API_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.max_retries = config.MAX_RETRIES if max_retries is None else max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            "Initialized CatalogServiceClient",
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the persistent HTTP client with connection pooling.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                    keepalive_expiry=30.0,
                ),
                transport=self._transport,
            )
            logger.debug("Created new HTTP client with connection pooling")
        return self._client

    async def close(self) -> None:
        """
        Close the HTTP client and release connections.

        Should be called during application shutdown.
        """
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed HTTP client")

    def _get_request_headers(self) -> Dict[str, str]:
        """
        Get common request headers including request ID for tracing.

        Returns:
            Dictionary of HTTP headers
        """
        headers = {
            "User-Agent": "CodeCraft-CatalogTree/1.0",
            "Accept": "application/json",
        }

        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        return headers

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        """GET ``path`` with retries and return the decoded body."""
        client = await self._get_client()
        url = f"{self.base_url}{path}"

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    logger.info("Retrying catalog request", url=url, attempt=attempt_number)
                response = await client.get(
                    url,
                    params=params,
                    headers=self._get_request_headers(),
                )
                response.raise_for_status()
                return response.json()

    async def _list(
        self,
        parent_level: Optional[Level],
        parent_id: Optional[str],
        path: str,
        params: Dict[str, Any],
    ) -> List[CatalogRecord]:
        """
        Run one list query and convert the response into records.

        Args:
            parent_level: Level of the node whose children are listed, None for root
            parent_id: Id of that node
            path: Endpoint path relative to ``base_url``
            params: Query parameters (parent filter plus caller filters)

        Returns:
            Records of the child level in server order

        Raises:
            CatalogFetchError: On any transport, HTTP or payload failure
        """
        child_level = parent_level.child_level if parent_level else Level.DOMAIN
        level_name = parent_level.value if parent_level else None
        start_time = time.perf_counter()

        logger.debug(
            "Fetching catalog children",
            level=level_name,
            parent_id=parent_id,
            path=path,
            params=params,
        )

        try:
            body = await self._get_json(path, {k: v for k, v in params.items() if v is not None})
        except httpx.HTTPStatusError as error:
            duration = time.perf_counter() - start_time
            track_catalog_fetch(child_level.value, False, duration)
            logger.error(
                "HTTP error from catalog service",
                level=level_name,
                parent_id=parent_id,
                status_code=error.response.status_code,
                response_body=error.response.text[:500],
                duration_ms=duration * 1000,
            )
            raise CatalogFetchError(
                level_name,
                parent_id,
                reason=f"catalog service returned {error.response.status_code}",
                status_code=error.response.status_code,
            ) from error
        except (httpx.TimeoutException, TimeoutError) as error:
            duration = time.perf_counter() - start_time
            track_catalog_fetch(child_level.value, False, duration)
            logger.error(
                "Catalog request timed out",
                level=level_name,
                parent_id=parent_id,
                timeout=self.timeout,
                duration_ms=duration * 1000,
                error_type=type(error).__name__,
            )
            raise CatalogFetchError(
                level_name, parent_id, reason=f"timed out after {self.timeout}s"
            ) from error
        except httpx.RequestError as error:
            duration = time.perf_counter() - start_time
            track_catalog_fetch(child_level.value, False, duration)
            logger.error(
                "Request error talking to catalog service",
                level=level_name,
                parent_id=parent_id,
                backend_url=self.base_url,
                error_type=type(error).__name__,
                error_message=str(error),
            )
            raise CatalogFetchError(level_name, parent_id, reason=str(error)) from error
        except ValueError as error:
            duration = time.perf_counter() - start_time
            track_catalog_fetch(child_level.value, False, duration)
            logger.error(
                "Catalog service returned invalid JSON",
                level=level_name,
                parent_id=parent_id,
            )
            raise CatalogFetchError(level_name, parent_id, reason="invalid JSON") from error

        items = unwrap_list(body)
        if items is None:
            track_catalog_fetch(child_level.value, False, time.perf_counter() - start_time)
            logger.error(
                "Unexpected catalog response shape",
                level=level_name,
                parent_id=parent_id,
                body_type=type(body).__name__,
            )
            raise CatalogFetchError(level_name, parent_id, reason="unexpected response shape")

        try:
            records = [record_from_payload(child_level, item) for item in items]
        except RecordValidationError as error:
            track_catalog_fetch(child_level.value, False, time.perf_counter() - start_time)
            logger.error(
                "Catalog response contained an invalid record",
                level=level_name,
                parent_id=parent_id,
                error=error.message,
            )
            raise CatalogFetchError(level_name, parent_id, reason=error.message) from error

        duration = time.perf_counter() - start_time
        track_catalog_fetch(child_level.value, True, duration)
        logger.info(
            "Fetched catalog children",
            level=level_name,
            parent_id=parent_id,
            child_level=child_level.value,
            count=len(records),
            duration_ms=duration * 1000,
        )
        return records

    async def list_domains(self, **filters: Any) -> List[Domain]:
        """
        List all domains.

        Args:
            **filters: Extra query parameters forwarded to the backend

        Returns:
            Domains in server order
        """
        return await self._list(None, None, "/domains", dict(filters))

    async def list_technologies(self, domain_id: str, **filters: Any) -> List[Technology]:
        """
        List the technologies of a domain.

        Args:
            domain_id: Id of the parent domain
            **filters: Extra query parameters forwarded to the backend

        Returns:
            Technologies in server order
        """
        params = {"domain": domain_id, **filters}
        return await self._list(Level.DOMAIN, domain_id, "/technologies", params)

    async def list_tutorials(self, technology_id: str, **filters: Any) -> List[Tutorial]:
        """
        List the tutorials of a technology.

        Args:
            technology_id: Id of the parent technology
            **filters: Extra query parameters forwarded to the backend

        Returns:
            Tutorials in server order
        """
        params = {"technology": technology_id, **filters}
        return await self._list(Level.TECHNOLOGY, technology_id, "/tutorials", params)

    async def list_lessons(self, tutorial_id: str, **filters: Any) -> List[Lesson]:
        """
        List the lessons of a tutorial.

        Lessons are returned in server order; sorting happens when the
        tree cache stores them.

        Args:
            tutorial_id: Id of the parent tutorial
            **filters: Extra query parameters forwarded to the backend

        Returns:
            Lessons in server order
        """
        return await self._list(
            Level.TUTORIAL, tutorial_id, f"/tutorials/{tutorial_id}/lessons", dict(filters)
        )

    async def health_check(self) -> bool:
        """
        Check if the catalog service is responding.

        Lists domains with a short timeout; any failure counts as unhealthy.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            client = await self._get_client()
            response = await client.get(
                f"{self.base_url}/domains",
                headers=self._get_request_headers(),
                timeout=2.0,
            )
            is_healthy = response.status_code == 200

            if is_healthy:
                logger.debug("Catalog service health check passed", backend_url=self.base_url)
            else:
                logger.warning(
                    "Catalog service health check failed",
                    backend_url=self.base_url,
                    status_code=response.status_code,
                )

            return is_healthy

        except Exception as error:
            logger.warning(
                "Catalog service health check failed with exception",
                backend_url=self.base_url,
                error_type=type(error).__name__,
                error_message=str(error),
            )
            return False
