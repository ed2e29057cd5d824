"""
Lasagna client: JWT-aware session and channel management on top of a
Phoenix-style pub/sub socket.

Example:
  >>> lasagna = Lasagna(get_jwt, socket_factory=Socket)
  >>> await lasagna.init_socket({"user_id": 42})
  >>> lasagna.connect()
  >>> await lasagna.init_channel("push:blog:1234")
  >>> await lasagna.join_channel("push:blog:1234", on_join=lambda: print("joined"))
"""
from __future__ import annotations

import asyncio
from types import MappingProxyType
from typing import Any, Mapping

from lasagna import policy, tokens
from lasagna.channels import ChannelLifecycle
from lasagna.config import LASAGNA_URL
from lasagna.credentials import CredentialAccessor
from lasagna.registry import Callback, ChannelCallbacks, ChannelHandle, ChannelRegistry
from lasagna.rejoin import RejoinCoordinator
from lasagna.session import SocketCallbacks, SocketSession
from lasagna.transport import SocketFactory


class Lasagna:
  """Client for one socket and the channels multiplexed over it."""

  def __init__(
    self,
    get_jwt: CredentialAccessor,
    url: str | None = None,
    *,
    socket_factory: SocketFactory,
  ):
    self._registry = ChannelRegistry()
    self._rejoins = RejoinCoordinator()
    self._session = SocketSession(
      get_jwt,
      url or LASAGNA_URL,
      socket_factory,
      on_teardown=self.leave_all_channels,
    )
    self._channels = ChannelLifecycle(get_jwt, self._session, self._registry, self._rejoins)

  @property
  def url(self) -> str:
    return self._session.url

  @property
  def channels(self) -> Mapping[str, ChannelHandle]:
    """Read-only view of topic -> channel handle."""
    return MappingProxyType(self._registry)

  # Socket

  async def init_socket(
    self,
    params: Mapping[str, Any] | None = None,
    callbacks: SocketCallbacks | None = None,
  ) -> bool:
    return await self._session.init_socket(params, callbacks)

  def connect(self) -> None:
    self._session.connect()

  def is_connected(self) -> bool:
    return self._session.is_connected()

  def disconnect(self, callback: Callback | None = None) -> None:
    self._session.disconnect(callback)

  # Channels

  async def init_channel(
    self,
    topic: str,
    params: Mapping[str, Any] | None = None,
    callbacks: ChannelCallbacks | None = None,
  ) -> bool:
    return await self._channels.init_channel(topic, params, callbacks)

  async def join_channel(self, topic: str, on_join: Callback | None = None) -> bool:
    return await self._channels.join_channel(topic, on_join)

  def channel_push(self, topic: str, event: str, payload: Any) -> None:
    self._channels.channel_push(topic, event, payload)

  def register_event_handler(self, topic: str, event: str, callback: Callback) -> int | None:
    return self._channels.register_event_handler(topic, event, callback)

  def unregister_event_handler(
    self, topic: str, event: str, callback: Callback, ref: int
  ) -> None:
    self._channels.unregister_event_handler(topic, event, callback, ref)

  def unregister_all_event_handlers(self, topic: str, event: str) -> None:
    self._channels.unregister_all_event_handlers(topic, event)

  def leave_channel(self, topic: str) -> None:
    self._channels.leave_channel(topic)

  def leave_all_channels(self) -> None:
    self._channels.leave_all_channels()

  # Helpers

  @staticmethod
  def should_auth(topic: str) -> bool:
    return policy.should_auth(topic)

  @staticmethod
  def is_invalid_jwt(token: Any) -> bool:
    return tokens.is_invalid_jwt(token)

  async def settle(self) -> None:
    """Wait for background rejoin/reconnect work to finish."""
    while self._session.reconnecting or self._rejoins.busy:
      await self._session.wait_reconnected()
      await self._rejoins.settle()
      await asyncio.sleep(0)
