"""
Abstract upstream client interface.

The orchestrator talks to the open-banking API only through this seam. The
production implementation signs and sends real HTTP requests; the mock
implementation answers from canned data for demos and tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class UpstreamClient(ABC):
    """Abstract base class for open-banking API clients."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client identifier (e.g. 'enable_banking')."""
        ...

    @abstractmethod
    async def call(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Issue one signed call to the upstream API.

        Returns:
            The parsed JSON body, or {"raw": text} when a successful response
            is not valid JSON.

        Raises:
            SigningError: If no assertion could be minted.
            UpstreamError: On a non-success HTTP status (status and body kept).
            NetworkError: When no response was received.
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""
