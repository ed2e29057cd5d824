"""
Rejoin bookkeeping.

Each topic has at most one pending rejoin subscription. Signalling a topic
consumes the subscription and runs the rejoin as a background task, so a
burst of kicks/join errors yields exactly one rejoin cycle. The rejoin
itself re-subscribes when it re-initializes the channel.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict

LOGGER = logging.getLogger("lasagna.rejoin")

RejoinCallback = Callable[[], Awaitable[None]]


def _current_task() -> asyncio.Task | None:
  try:
    return asyncio.current_task()
  except RuntimeError:
    return None


class RejoinCoordinator:
  """Per-topic one-shot rejoin subscriptions plus their running tasks."""

  def __init__(self) -> None:
    self._pending: Dict[str, RejoinCallback] = {}
    self._tasks: Dict[str, asyncio.Task] = {}

  def __contains__(self, topic: str) -> bool:
    return topic in self._pending

  def subscribe(self, topic: str, callback: RejoinCallback) -> None:
    self._pending[topic] = callback
    LOGGER.debug("Rejoin armed for %s", topic)

  def cancel(self, topic: str) -> None:
    """Drop the pending subscription and abort a rejoin in flight."""
    self._pending.pop(topic, None)
    task = self._tasks.get(topic)
    if task and not task.done() and task is not _current_task():
      LOGGER.debug("Aborting in-flight rejoin for %s", topic)
      task.cancel()

  def signal(self, topic: str) -> bool:
    """
    Fire the pending rejoin for `topic`.

    Returns:
      True if a rejoin was started, False if none was armed
    """
    callback = self._pending.pop(topic, None)
    if callback is None:
      LOGGER.debug("Ignoring rejoin signal for %s: nothing armed", topic)
      return False

    LOGGER.info("Rejoin cycle started for %s", topic)
    task = asyncio.get_running_loop().create_task(
      self._run(topic, callback), name=f"lasagna-rejoin:{topic}"
    )
    self._tasks[topic] = task
    task.add_done_callback(lambda t: self._forget(topic, t))
    return True

  @property
  def busy(self) -> bool:
    return any(not task.done() for task in self._tasks.values())

  def in_flight(self, topic: str) -> bool:
    task = self._tasks.get(topic)
    return bool(task and not task.done())

  async def settle(self) -> None:
    """Wait until no rejoin task is running."""
    while self._tasks:
      await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

  async def _run(self, topic: str, callback: RejoinCallback) -> None:
    try:
      await callback()
    except asyncio.CancelledError:
      LOGGER.debug("Rejoin for %s cancelled", topic)
      raise
    except Exception:
      LOGGER.exception("Rejoin for %s failed", topic)

  def _forget(self, topic: str, task: asyncio.Task) -> None:
    if self._tasks.get(topic) is task:
      del self._tasks[topic]
