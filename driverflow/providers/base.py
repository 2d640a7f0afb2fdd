"""Base provider interface for external verification, payment and storage APIs."""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx

from ..config import ProviderConfig
from ..contracts import Subject
from ..exceptions import NotConfigured, ProviderError

logger = logging.getLogger(__name__)


class StepProvider(Protocol):
    """Anything a registry step can delegate to."""

    name: str

    async def invoke(self, subject: Subject) -> Any:
        """Run the provider operation for ``subject``."""


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class BaseProvider(metaclass=abc.ABCMeta):
    """Abstract HTTP provider.

    Subclasses turn a subject into a request document, send it to one
    upstream API and normalize the response into a stable shape. No retries
    or caching happen here; every failure surfaces as ``ProviderError``.
    """

    name: str = "provider"
    label: str = "Provider call"

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    @abc.abstractmethod
    def build_request(self, subject: Subject) -> dict:
        """Build the upstream request document for ``subject``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def call(self, request: dict) -> dict:
        """Send ``request`` upstream and return the normalized result."""
        raise NotImplementedError

    async def invoke(self, subject: Subject) -> dict:
        return await self.call(self.build_request(subject))

    # ------------------------------------------------------------------
    def _require(self, config: ProviderConfig, message: Optional[str] = None) -> None:
        if not config.configured:
            raise NotConfigured(
                message or f"{self.label} API not configured", provider=self.name
            )

    def _headers(self, config: ProviderConfig) -> dict[str, str]:
        return {"Authorization": f"Bearer {config.api_key}"}

    async def _send(
        self,
        config: ProviderConfig,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict:
        """Perform one HTTP call against ``config`` and decode its JSON object body."""
        self._require(config)
        url = f"{config.base_url.rstrip('/')}{path}"
        headers = {**self._headers(config), **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(
                timeout=config.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{self.label} failed: upstream returned {exc.response.status_code}",
                provider=self.name,
            ) from exc
        except httpx.HTTPError as exc:
            reason = str(exc) or exc.__class__.__name__
            raise ProviderError(
                f"{self.label} failed: {reason}", provider=self.name
            ) from exc
        except ValueError as exc:
            raise ProviderError(
                f"{self.label} failed: invalid response body", provider=self.name
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.label} failed: invalid response body", provider=self.name
            )
        return data

    async def _post_json(self, config: ProviderConfig, path: str, payload: dict) -> dict:
        data = await self._send(config, "POST", path, json=payload)
        logger.debug(f"{self.label} responded from {config.base_url}{path}")
        return data
