"""Authoritative topic -> channel state map."""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping

from lasagna.transport import Channel

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


@dataclass(frozen=True)
class ChannelCallbacks:
  on_close: Callback | None = None
  on_error: Callback | None = None


@dataclass
class EventBinding:
  """One caller-registered handler for a channel event."""

  callback: Callback
  ref: int
  transport_ref: Any = None


@dataclass
class ChannelHandle:
  topic: str
  channel: Channel
  params: Dict[str, Any] = field(default_factory=dict)
  callbacks: ChannelCallbacks | None = None
  on_join: Callback | None = None
  event_bindings: Dict[str, List[EventBinding]] = field(default_factory=dict)

  def add_binding(self, event: str, binding: EventBinding) -> None:
    self.event_bindings.setdefault(event, []).append(binding)

  def remove_binding(self, event: str, callback: Callback, ref: int) -> EventBinding | None:
    bindings = self.event_bindings.get(event, [])
    for idx, binding in enumerate(bindings):
      if binding.ref == ref and binding.callback == callback:
        del bindings[idx]
        if not bindings:
          self.event_bindings.pop(event, None)
        return binding
    return None

  def clear_bindings(self, event: str) -> List[EventBinding]:
    return self.event_bindings.pop(event, [])


class ChannelRegistry(Mapping[str, ChannelHandle]):
  """Holds at most one handle per topic."""

  def __init__(self) -> None:
    self._handles: Dict[str, ChannelHandle] = {}
    self._refs = itertools.count(1)

  def __getitem__(self, topic: str) -> ChannelHandle:
    return self._handles[topic]

  def __iter__(self) -> Iterator[str]:
    return iter(self._handles)

  def __len__(self) -> int:
    return len(self._handles)

  def put(self, handle: ChannelHandle) -> ChannelHandle | None:
    previous = self._handles.get(handle.topic)
    self._handles[handle.topic] = handle
    logger.debug("Registered channel %s", handle.topic)
    return previous

  def pop(self, topic: str) -> ChannelHandle | None:
    handle = self._handles.pop(topic, None)
    if handle is not None:
      logger.debug("Removed channel %s", topic)
    return handle

  def clear(self) -> None:
    self._handles = {}

  def next_ref(self) -> int:
    return next(self._refs)
