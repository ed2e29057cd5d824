"""Tests for credential fetching and the HTTP token accessor."""
import json
import logging

import httpx
import pytest

from conftest import URL, RecordingAccessor
from lasagna import CredentialContext, CredentialError, CredentialKind, Lasagna, http_jwt_fetcher
from lasagna.credentials import fetch_credential, without_credential

TOKEN_URL = "http://unit-test.local/jwt"


def test_without_credential_copies():
  params = {"jwt": "x", "user_id": 1}
  stripped = without_credential(params)

  assert stripped == {"user_id": 1}
  assert params == {"jwt": "x", "user_id": 1}
  assert without_credential(None) == {}


@pytest.mark.asyncio
async def test_fetch_credential_passes_kind_and_context(fresh_jwt):
  accessor = RecordingAccessor(fresh_jwt)
  params = {"private": "thingy"}

  token = await fetch_credential(accessor, CredentialKind.CHANNEL, params, "push:a")

  assert token == fresh_jwt
  kind, context = accessor.calls[0]
  assert kind is CredentialKind.CHANNEL
  assert context == CredentialContext(params={"private": "thingy"}, topic="push:a")
  assert context.params is not params


@pytest.mark.asyncio
async def test_fetch_credential_swallows_accessor_failure(caplog):
  accessor = RecordingAccessor(CredentialError("nope"))

  with caplog.at_level(logging.WARNING, logger="lasagna.credentials"):
    token = await fetch_credential(accessor, CredentialKind.SOCKET)

  assert token is None
  assert "Credential accessor failed" in caplog.text


@pytest.mark.asyncio
async def test_fetch_credential_rejects_unusable_tokens(expired_jwt):
  for value in ("", None, 123, ["x"], expired_jwt):
    assert await fetch_credential(RecordingAccessor(value), CredentialKind.SOCKET) is None


@pytest.mark.asyncio
async def test_http_jwt_fetcher_returns_token(fresh_jwt):
  seen = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, json={"jwt": fresh_jwt})

  get_jwt = http_jwt_fetcher(
    TOKEN_URL,
    headers={"Authorization": "Bearer abc"},
    transport=httpx.MockTransport(handler),
  )
  context = CredentialContext(params={"jwt": "stale", "blog_id": 5}, topic="push:blog:5")

  assert await get_jwt(CredentialKind.CHANNEL, context) == fresh_jwt

  request = seen[0]
  assert request.method == "POST"
  assert str(request.url) == TOKEN_URL
  assert request.headers["Authorization"] == "Bearer abc"
  assert json.loads(request.content) == {
    "kind": "channel",
    "topic": "push:blog:5",
    "params": {"blog_id": 5},
  }


@pytest.mark.asyncio
async def test_http_jwt_fetcher_http_error():
  get_jwt = http_jwt_fetcher(
    TOKEN_URL,
    transport=httpx.MockTransport(lambda request: httpx.Response(500)),
  )
  with pytest.raises(CredentialError):
    await get_jwt(CredentialKind.SOCKET, CredentialContext())


@pytest.mark.asyncio
async def test_http_jwt_fetcher_missing_jwt():
  get_jwt = http_jwt_fetcher(
    TOKEN_URL,
    transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"token": "x"})),
  )
  with pytest.raises(CredentialError):
    await get_jwt(CredentialKind.SOCKET, CredentialContext())


@pytest.mark.asyncio
async def test_http_jwt_fetcher_invalid_json():
  get_jwt = http_jwt_fetcher(
    TOKEN_URL,
    transport=httpx.MockTransport(lambda request: httpx.Response(200, text="not json")),
  )
  with pytest.raises(CredentialError):
    await get_jwt(CredentialKind.SOCKET, CredentialContext())


@pytest.mark.asyncio
async def test_failing_http_fetcher_fails_init_socket(transport):
  get_jwt = http_jwt_fetcher(
    TOKEN_URL,
    transport=httpx.MockTransport(lambda request: httpx.Response(403)),
  )
  lasagna = Lasagna(get_jwt, URL, socket_factory=transport)

  assert await lasagna.init_socket({"user_id": 1}) is False
  assert transport.sockets == []
