"""Minimal GraphQL-over-HTTP client for the data index."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger("workflow_orchestrator.services.graphql_client")


@dataclass
class GraphQLClientError:
    """Error half of a query result.

    ``network_error`` is set when no usable GraphQL response came back;
    ``graphql_errors`` holds the ``errors`` array of an answered query.
    """

    message: str
    network_error: Optional[BaseException] = None
    graphql_errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def network_cause(self) -> Optional[str]:
        if self.network_error is None:
            return None
        cause = self.network_error.__cause__ or self.network_error
        return str(cause) or type(cause).__name__


@dataclass
class GraphQLResult:
    data: Optional[Dict[str, Any]] = None
    error: Optional[GraphQLClientError] = None


class GraphQLClient:
    """Posts GraphQL documents and folds transport and protocol failures into the result."""

    def __init__(self, url: str, *, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0) -> None:
        self._url = url
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def url(self) -> str:
        return self._url

    async def query(self, document: str, variables: Optional[Dict[str, Any]] = None) -> GraphQLResult:
        try:
            response = await self._http.post(
                self._url,
                json={"query": document, "variables": variables or {}},
                headers={"Accept": "application/graphql-response+json, application/json"},
            )
        except httpx.RequestError as exc:
            return GraphQLResult(
                error=GraphQLClientError(message=f"[Network] request to {self._url} failed", network_error=exc)
            )

        try:
            payload = response.json()
        except ValueError as exc:
            return GraphQLResult(
                error=GraphQLClientError(
                    message=f"[Network] {response.status_code} {response.reason_phrase}".strip(),
                    network_error=exc,
                )
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            messages = "\n".join(str(err.get("message", "")) for err in errors if isinstance(err, dict))
            return GraphQLResult(
                data=data,
                error=GraphQLClientError(message=f"[GraphQL] {messages}", graphql_errors=list(errors)),
            )

        if response.is_error:
            return GraphQLResult(
                data=data,
                error=GraphQLClientError(
                    message=f"[Network] {response.status_code} {response.reason_phrase}".strip(),
                    network_error=httpx.HTTPStatusError(
                        response.text or response.reason_phrase,
                        request=response.request,
                        response=response,
                    ),
                ),
            )

        return GraphQLResult(data=data)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
