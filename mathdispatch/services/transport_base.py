"""
MathDispatch — Abstract HTTP Transport Interface
=================================================

What:  The contract the dispatcher uses to reach the integration services.
Why:   Tests substitute a deterministic fake; hosts with their own HTTP stack
       (a proxy session, a signed client) plug it in without touching the
       dispatcher.
How:   Implementations provide ``request``; ``arequest`` defaults to running
       ``request`` in a worker thread.

Contract:
    - Returns the response body as text, whatever the status code.
    - Returns "" when no response could be obtained. Never raises for
      network problems.
    - Blocks until the body is available (no timeout unless configured).
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Mapping, Optional

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


class HttpTransport(ABC):
    """Abstract blocking HTTP transport."""

    @abstractmethod
    def request(
        self,
        method: str,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Perform one HTTP request.

        Args:
            method:  "GET" or "POST".
            url:     Absolute URL.
            body:    Url-encoded form body for POST; None for GET.
            headers: Extra request headers.

        Returns:
            Response text, or "" on transport failure.
        """
        ...

    async def arequest(
        self,
        method: str,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Awaitable ``request``. Cancelling the caller abandons the wait."""
        return await asyncio.to_thread(self.request, method, url, body, headers)

    def close(self) -> None:
        """Release pooled connections. No-op by default."""

    async def aclose(self) -> None:
        self.close()
