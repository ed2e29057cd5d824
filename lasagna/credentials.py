"""
Credential accessor contract and helpers.

The accessor is an async callable `(kind, context) -> token`. Whatever it
returns (or raises) is judged by `fetch_credential`; callers only ever see
a usable token or None.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping

import httpx

from lasagna.config import CREDENTIAL_PARAM, LASAGNA_JWT_TIMEOUT_SEC
from lasagna.exceptions import CredentialError
from lasagna.tokens import is_invalid_jwt

logger = logging.getLogger(__name__)


class CredentialKind(str, Enum):
  SOCKET = "socket"
  CHANNEL = "channel"


@dataclass(frozen=True)
class CredentialContext:
  """What the accessor is told about the token it should mint."""

  params: Dict[str, Any] = field(default_factory=dict)
  topic: str | None = None


CredentialAccessor = Callable[[CredentialKind, CredentialContext], Awaitable[Any]]


def without_credential(params: Mapping[str, Any] | None) -> Dict[str, Any]:
  """Copy `params` minus the bearer token."""
  return {k: v for k, v in (params or {}).items() if k != CREDENTIAL_PARAM}


async def fetch_credential(
  accessor: CredentialAccessor,
  kind: CredentialKind,
  params: Mapping[str, Any] | None = None,
  topic: str | None = None,
) -> str | None:
  """
  Ask the accessor for a fresh token.

  Args:
    accessor: Credential accessor supplied by the caller
    kind: Whether the token is for the socket or a channel
    params: Connection or channel params (copied, never shared)
    topic: Channel topic for channel tokens

  Returns:
    A token that passes `is_invalid_jwt`, or None
  """
  context = CredentialContext(params=dict(params or {}), topic=topic)
  try:
    token = await accessor(kind, context)
  except Exception as exc:
    logger.warning(
      "Credential accessor failed for %s %s: %s",
      kind.value,
      topic or "",
      exc,
    )
    return None

  if is_invalid_jwt(token):
    logger.warning("Credential accessor returned an unusable %s token", kind.value)
    return None
  return token


def http_jwt_fetcher(
  url: str,
  *,
  headers: Dict[str, str] | None = None,
  timeout: float = LASAGNA_JWT_TIMEOUT_SEC,
  transport: httpx.AsyncBaseTransport | None = None,
) -> CredentialAccessor:
  """
  Build a credential accessor backed by an HTTP token endpoint.

  The endpoint receives `{"kind", "topic", "params"}` as JSON and must
  answer with `{"jwt": "<token>"}`.

  Args:
    url: Token endpoint
    headers: Extra request headers (e.g. an Authorization bearer)
    timeout: Request timeout in seconds
    transport: Optional httpx transport, mainly for tests

  Returns:
    Async accessor usable as `Lasagna(get_jwt=...)`
  """

  async def get_jwt(kind: CredentialKind, context: CredentialContext) -> str:
    payload = {
      "kind": kind.value,
      "topic": context.topic,
      "params": without_credential(context.params),
    }
    try:
      async with httpx.AsyncClient(timeout=timeout, transport=transport) as http:
        response = await http.post(url, json=payload, headers=headers or {})
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as exc:
      raise CredentialError(f"Token request to {url} failed: {exc}") from exc
    except ValueError as exc:
      raise CredentialError(f"Token endpoint {url} returned invalid JSON") from exc

    token = data.get(CREDENTIAL_PARAM) if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
      raise CredentialError(f"Token endpoint {url} returned no {CREDENTIAL_PARAM}")
    return token

  return get_jwt
