"""
Channel init/join/leave with JWT acquisition and rejoin on auth failure.

Every channel gets two structural bindings on the transport: "banned"
tears it down for good, "kicked" fires the topic's armed rejoin. A join
error on an auth channel whose JWT has gone stale fires the same rejoin,
which rebuilds the channel under a fresh JWT and replays the caller's
join callback.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Dict, List, Mapping

from lasagna.config import BAN_EVENT, CREDENTIAL_PARAM, KICK_EVENT
from lasagna.credentials import (
  CredentialAccessor,
  CredentialKind,
  fetch_credential,
  without_credential,
)
from lasagna.policy import should_auth
from lasagna.registry import (
  Callback,
  ChannelCallbacks,
  ChannelHandle,
  ChannelRegistry,
  EventBinding,
)
from lasagna.rejoin import RejoinCoordinator
from lasagna.session import SocketSession
from lasagna.tokens import is_invalid_jwt
from lasagna.transport import Channel

logger = logging.getLogger(__name__)


def _valid_topic(topic: Any) -> bool:
  return isinstance(topic, str) and topic != ""


class ChannelLifecycle:
  def __init__(
    self,
    get_jwt: CredentialAccessor,
    session: SocketSession,
    registry: ChannelRegistry,
    rejoins: RejoinCoordinator,
  ):
    self._get_jwt = get_jwt
    self._session = session
    self._registry = registry
    self._rejoins = rejoins

  async def init_channel(
    self,
    topic: str,
    params: Mapping[str, Any] | None = None,
    callbacks: ChannelCallbacks | None = None,
  ) -> bool:
    """
    Create and register the transport channel for `topic`.

    Auth topics get a valid JWT in their params first, fetched from the
    accessor when missing or stale.

    Args:
      topic: Channel topic
      params: Channel params (copied; the caller's mapping is untouched)
      callbacks: Optional close/error callbacks

    Returns:
      True if the channel was registered
    """
    if not _valid_topic(topic):
      logger.warning("init_channel rejected topic %r", topic)
      return False

    if self._session.socket is None:
      logger.warning("init_channel(%s) without a socket", topic)
      return False

    params = dict(params or {})

    if should_auth(topic):
      jwt = params.get(CREDENTIAL_PARAM)
      if is_invalid_jwt(jwt):
        jwt = await fetch_credential(
          self._get_jwt, CredentialKind.CHANNEL, without_credential(params), topic
        )
      if is_invalid_jwt(jwt):
        logger.warning("Channel %s not created: no usable JWT", topic)
        return False
      params[CREDENTIAL_PARAM] = jwt

    # The socket may have gone away while the accessor was running
    if self._session.socket is None:
      logger.warning("Socket closed before channel %s was created", topic)
      return False

    if topic in self._registry:
      self.leave_channel(topic)

    channel = self._session.channel(topic, params)

    if callbacks and callbacks.on_error:
      channel.onError(callbacks.on_error)

    if callbacks and callbacks.on_close:
      channel.onClose(callbacks.on_close)

    channel.on(BAN_EVENT, lambda *_: self._on_banned(topic, channel))
    channel.on(KICK_EVENT, lambda *_: self._on_kicked(topic, channel))

    self._registry.put(
      ChannelHandle(topic=topic, channel=channel, params=params, callbacks=callbacks)
    )
    self._rejoins.subscribe(topic, partial(self._rejoin, topic))
    return True

  async def join_channel(self, topic: str, on_join: Callback | None = None) -> bool:
    """
    Join a registered channel.

    Args:
      topic: Channel topic
      on_join: Called when the server acknowledges the join; kept on the
        handle so a rejoin can call it again

    Returns:
      False if there is no channel for `topic`, True once the join is sent
    """
    if not _valid_topic(topic):
      return False

    handle = self._registry.get(topic)
    if handle is None:
      logger.warning("join_channel(%s): channel not initialized", topic)
      return False

    handle.on_join = on_join

    def joined(*_: Any) -> None:
      if on_join is not None:
        on_join()

    handle.channel.join().receive("ok", joined).receive(
      "error", lambda *_: self._on_join_error(topic)
    )
    return True

  def channel_push(self, topic: str, event: str, payload: Any) -> None:
    if not _valid_topic(topic):
      return
    handle = self._registry.get(topic)
    if handle is None:
      logger.debug("Dropping push %s to unknown channel %s", event, topic)
      return
    handle.channel.push(event, payload)

  def register_event_handler(
    self, topic: str, event: str, callback: Callback
  ) -> int | None:
    if not _valid_topic(topic):
      return None
    handle = self._registry.get(topic)
    if handle is None:
      return None
    binding = EventBinding(
      callback=callback,
      ref=self._registry.next_ref(),
      transport_ref=handle.channel.on(event, callback),
    )
    handle.add_binding(event, binding)
    return binding.ref

  def unregister_event_handler(
    self, topic: str, event: str, callback: Callback, ref: int
  ) -> None:
    if not _valid_topic(topic):
      return
    handle = self._registry.get(topic)
    if handle is None:
      return
    binding = handle.remove_binding(event, callback, ref)
    if binding is None:
      logger.debug("No %s handler with ref %s on %s", event, ref, topic)
      return
    handle.channel.off(event, binding.transport_ref)

  def unregister_all_event_handlers(self, topic: str, event: str) -> None:
    if not _valid_topic(topic):
      return
    handle = self._registry.get(topic)
    if handle is None:
      return
    handle.clear_bindings(event)
    handle.channel.off(event)

  def leave_channel(self, topic: str) -> None:
    if not _valid_topic(topic):
      return
    self._rejoins.cancel(topic)
    handle = self._registry.pop(topic)
    if handle is not None:
      handle.channel.leave()

  def leave_all_channels(self) -> None:
    for topic in list(self._registry):
      self.leave_channel(topic)
    self._registry.clear()

  def _is_current(self, topic: str, channel: Channel) -> bool:
    handle = self._registry.get(topic)
    return handle is not None and handle.channel is channel

  def _on_banned(self, topic: str, channel: Channel) -> None:
    if not self._is_current(topic, channel):
      logger.debug("Ignoring ban from a stale %s channel", topic)
      return
    logger.warning("Banned from %s; leaving", topic)
    self.leave_channel(topic)

  def _on_kicked(self, topic: str, channel: Channel) -> None:
    if not self._is_current(topic, channel):
      logger.debug("Ignoring kick from a stale %s channel", topic)
      return
    logger.info("Kicked from %s", topic)
    self._rejoins.signal(topic)

  def _on_join_error(self, topic: str) -> None:
    handle = self._registry.get(topic)
    if handle is None or not should_auth(topic):
      # Public channels stay unjoined; there is no JWT to refresh
      return
    if is_invalid_jwt(handle.params.get(CREDENTIAL_PARAM)):
      logger.info("Join of %s refused with a stale JWT", topic)
      self._rejoins.signal(topic)

  async def _rejoin(self, topic: str) -> None:
    handle = self._registry.get(topic)
    if handle is None:
      return

    on_join = handle.on_join
    params = without_credential(handle.params)
    bindings = {event: list(items) for event, items in handle.event_bindings.items()}

    self.leave_channel(topic)

    if not await self.init_channel(topic, params, handle.callbacks):
      logger.warning("Rejoin of %s abandoned: channel could not be re-initialized", topic)
      return

    self._restore_bindings(topic, bindings)
    await self.join_channel(topic, on_join)

  def _restore_bindings(self, topic: str, bindings: Dict[str, List[EventBinding]]) -> None:
    handle = self._registry[topic]
    for event, items in bindings.items():
      for binding in items:
        handle.add_binding(
          event,
          EventBinding(
            callback=binding.callback,
            ref=binding.ref,
            transport_ref=handle.channel.on(event, binding.callback),
          ),
        )
