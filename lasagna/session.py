"""
Single transport connection owned by a Lasagna client.

Phoenix-style sockets report an auth rejection as a plain connection
error. On every error the session re-checks its own token; if that token
is stale it rebuilds the socket with a fresh one instead of letting the
transport retry with a credential the server will keep refusing.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Mapping

from lasagna.config import CREDENTIAL_PARAM
from lasagna.credentials import (
  CredentialAccessor,
  CredentialKind,
  fetch_credential,
  without_credential,
)
from lasagna.tokens import is_invalid_jwt
from lasagna.transport import Channel, Socket, SocketFactory

LOGGER = logging.getLogger("lasagna.session")

Callback = Callable[..., Any]


@dataclass(frozen=True)
class SocketCallbacks:
  on_open: Callback | None = None
  on_close: Callback | None = None
  on_error: Callback | None = None


class SocketSession:
  """Owns zero or one live transport socket."""

  def __init__(
    self,
    get_jwt: CredentialAccessor,
    url: str,
    socket_factory: SocketFactory,
    on_teardown: Callable[[], None],
  ):
    self.url = url
    self._get_jwt = get_jwt
    self._socket_factory = socket_factory
    self._on_teardown = on_teardown
    self._socket: Socket | None = None
    self._params: Dict[str, Any] = {}
    self._callbacks: SocketCallbacks | None = None
    self._reconnect_task: asyncio.Task | None = None

  @property
  def socket(self) -> Socket | None:
    return self._socket

  @property
  def reconnecting(self) -> bool:
    return bool(self._reconnect_task and not self._reconnect_task.done())

  async def init_socket(
    self,
    params: Mapping[str, Any] | None = None,
    callbacks: SocketCallbacks | None = None,
  ) -> bool:
    """
    Create the transport socket with a usable JWT.

    Args:
      params: Connection params; `jwt` is used if still valid
      callbacks: Optional open/close/error callbacks

    Returns:
      True if the socket was created (call `connect` next)
    """
    params = dict(params or {})
    jwt = params.get(CREDENTIAL_PARAM)

    if is_invalid_jwt(jwt):
      jwt = await fetch_credential(
        self._get_jwt, CredentialKind.SOCKET, without_credential(params)
      )

    if is_invalid_jwt(jwt):
      LOGGER.warning("Socket not created: no usable JWT")
      return False

    if self._socket is not None:
      LOGGER.info("Replacing existing socket for %s", self.url)
      self.disconnect()

    params[CREDENTIAL_PARAM] = jwt
    socket = self._socket_factory(self.url, {"params": dict(params)})

    if callbacks and callbacks.on_open:
      socket.onOpen(callbacks.on_open)

    if callbacks and callbacks.on_close:
      socket.onClose(callbacks.on_close)

    socket.onError(partial(self._handle_error, socket))

    self._socket = socket
    self._params = params
    self._callbacks = callbacks
    LOGGER.info("Socket created for %s", self.url)
    return True

  def connect(self) -> None:
    if self._socket is None:
      LOGGER.warning("connect() called without a socket; call init_socket first")
      return
    self._socket.connect()

  def disconnect(self, callback: Callback | None = None) -> None:
    """Leave every channel, then close the socket."""
    self._on_teardown()
    if self._socket is None:
      return
    socket, self._socket = self._socket, None
    socket.disconnect(callback)

  def is_connected(self) -> bool:
    if self._socket is None:
      return False
    return bool(self._socket.isConnected())

  def channel(self, topic: str, params: Dict[str, Any]) -> Channel | None:
    if self._socket is None:
      return None
    return self._socket.channel(topic, params)

  async def wait_reconnected(self) -> None:
    task = self._reconnect_task
    if task is not None:
      await asyncio.gather(task, return_exceptions=True)

  def _handle_error(self, socket: Socket, *args: Any) -> None:
    if self._callbacks and self._callbacks.on_error:
      self._callbacks.on_error(*args)

    if socket is not self._socket:
      LOGGER.debug("Ignoring error from a retired socket")
      return

    if not is_invalid_jwt(self._params.get(CREDENTIAL_PARAM)):
      return

    if self.reconnecting:
      LOGGER.debug("Socket error during reconnect; not starting another")
      return

    LOGGER.info("Socket JWT is stale, reconnecting to %s", self.url)
    self._reconnect_task = asyncio.get_running_loop().create_task(
      self._reconnect(), name="lasagna-reconnect"
    )

  async def _reconnect(self) -> None:
    params = without_credential(self._params)
    callbacks = self._callbacks
    try:
      self.disconnect()
      if await self.init_socket(params, callbacks):
        self.connect()
      else:
        LOGGER.warning("Reconnect to %s abandoned: no usable JWT", self.url)
    except asyncio.CancelledError:
      raise
    except Exception:
      LOGGER.exception("Reconnect to %s failed", self.url)
