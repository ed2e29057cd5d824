"""
Shape of the pub/sub transport the client drives.

Any Phoenix-style socket implementation satisfying these protocols can be
passed to `Lasagna(socket_factory=...)`.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Protocol


class Push(Protocol):
  def receive(self, status: str, callback: Callable[..., Any]) -> "Push":
    ...


class Channel(Protocol):
  def join(self) -> Push:
    ...

  def leave(self) -> Any:
    ...

  def push(self, event: str, payload: Any) -> Any:
    ...

  def on(self, event: str, callback: Callable[..., Any]) -> Any:
    ...

  def off(self, event: str, ref: Any = None) -> None:
    ...

  def onClose(self, callback: Callable[..., Any]) -> Any:
    ...

  def onError(self, callback: Callable[..., Any]) -> Any:
    ...


class Socket(Protocol):
  def connect(self) -> None:
    ...

  def disconnect(self, callback: Callable[[], Any] | None = None) -> None:
    ...

  def isConnected(self) -> bool:
    ...

  def onOpen(self, callback: Callable[..., Any]) -> Any:
    ...

  def onClose(self, callback: Callable[..., Any]) -> Any:
    ...

  def onError(self, callback: Callable[..., Any]) -> Any:
    ...

  def channel(self, topic: str, params: Dict[str, Any]) -> Channel:
    ...


# Socket(url, {"params": {...}})
SocketFactory = Callable[[str, Dict[str, Any]], Socket]
