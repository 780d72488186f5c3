"""HTTP client service with retry logic for the object store."""

import asyncio
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class HttpClientService:
    """Async HTTP client with exponential-backoff retries and timeout handling."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client service.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff in seconds
            max_delay: Maximum delay between retries in seconds
            base_url: Prefix for relative request URLs
            headers: Extra default headers (e.g. an authorization token)
            transport: Optional transport override, used by tests
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": "game-ranking/0.1.0", **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

        log.info(
            "HTTP client service initialized",
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

    async def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request with retry logic.

        Raises:
            httpx.HTTPStatusError: On a 4xx response, or a 5xx after all retries
            httpx.RequestError: If the transport fails after all retries
        """
        return await self._request("GET", url, headers=headers, params=params)

    async def put_json(
        self,
        url: str,
        data: Any,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """PUT a JSON document with retry logic."""
        merged = {"Content-Type": "application/json", **(headers or {})}
        return await self._request("PUT", url, headers=merged, json=data)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        for attempt in range(self.max_retries + 1):
            try:
                log.debug(
                    "Making HTTP request",
                    method=method,
                    url=url,
                    attempt=attempt + 1,
                    max_attempts=self.max_retries + 1,
                )

                response = await self._client.request(method, url, **kwargs)
                response.raise_for_status()

                log.info(
                    "HTTP request successful",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                )
                return response

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                log.warning(
                    "HTTP request failed",
                    method=method,
                    url=url,
                    attempt=attempt + 1,
                    error=str(e),
                    error_type=type(e).__name__,
                )

                # Client errors are not retried
                if isinstance(e, httpx.HTTPStatusError) and 400 <= e.response.status_code < 500:
                    raise

                if attempt == self.max_retries:
                    log.error(
                        "HTTP request failed after all retries",
                        method=method,
                        url=url,
                        total_attempts=self.max_retries + 1,
                    )
                    raise

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                log.info("Retrying after delay", delay=delay)
                await asyncio.sleep(delay)

        # Unreachable, but satisfies the type checker
        raise RuntimeError("Unexpected end of retry loop")

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._client.aclose()
        log.info("HTTP client closed")

    async def __aenter__(self) -> "HttpClientService":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.close()
