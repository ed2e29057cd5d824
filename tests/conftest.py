"""Recording fake of a Phoenix-style socket, plus token/accessor fixtures."""
import itertools
import time

import jwt
import pytest

from lasagna import Lasagna, tokens

URL = "http://unit-test.local"
SECRET = "unit-test-secret-0123456789abcdef-0123"


def mint_jwt(ttl_sec: int = 3600, **claims) -> str:
  now = int(time.time())
  payload = {"sub": "1234567890", "iat": now, "exp": now + ttl_sec}
  payload.update(claims)
  return jwt.encode(payload, SECRET, algorithm="HS256")


class FakePush:
  def __init__(self, status: str):
    self.status = status

  def receive(self, status, callback):
    if status == self.status:
      callback({"status": status})
    return self


class FakeChannel:
  def __init__(self, transport, topic, params):
    self.transport = transport
    self.topic = topic
    self.params = params
    self.handlers = {}
    self.pushes = []
    self.offs = []
    self.close_callbacks = []
    self.error_callbacks = []
    self.joins = 0
    self.left = False
    self._refs = itertools.count(100)

  def join(self):
    self.joins += 1
    self.transport.joins.append(self.topic)
    return FakePush(self.transport.join_status)

  def leave(self):
    self.left = True
    self.transport.leaves.append(self.topic)

  def push(self, event, payload):
    self.pushes.append((event, payload))

  def on(self, event, callback):
    ref = next(self._refs)
    self.handlers.setdefault(event, []).append((ref, callback))
    return ref

  def off(self, event, ref=None):
    self.offs.append((event, ref))
    if ref is None:
      self.handlers.pop(event, None)
    else:
      self.handlers[event] = [(r, cb) for r, cb in self.handlers.get(event, []) if r != ref]

  def onClose(self, callback):
    self.close_callbacks.append(callback)

  def onError(self, callback):
    self.error_callbacks.append(callback)

  def trigger(self, event, payload=None):
    for _, callback in list(self.handlers.get(event, [])):
      callback(payload)


class FakeSocket:
  def __init__(self, transport, url, opts):
    self.transport = transport
    self.url = url
    self.opts = opts
    self.connected = False
    self.connects = 0
    self.disconnects = 0
    self.is_connected_calls = 0
    self.channels = []
    self.open_callbacks = []
    self.close_callbacks = []
    self.error_callbacks = []

  def connect(self):
    self.connects += 1
    self.connected = True

  def disconnect(self, callback=None):
    self.disconnects += 1
    self.connected = False
    if callback:
      callback()

  def isConnected(self):
    self.is_connected_calls += 1
    return self.connected

  def onOpen(self, callback):
    self.open_callbacks.append(callback)

  def onClose(self, callback):
    self.close_callbacks.append(callback)

  def onError(self, callback):
    self.error_callbacks.append(callback)

  def channel(self, topic, params):
    channel = FakeChannel(self.transport, topic, params)
    self.channels.append(channel)
    return channel

  def error(self, *args):
    for callback in list(self.error_callbacks):
      callback(*args)


class FakeTransport:
  """Socket factory that records every socket and channel it hands out."""

  def __init__(self):
    self.sockets = []
    self.joins = []
    self.leaves = []
    self.join_status = "ok"

  def __call__(self, url, opts):
    socket = FakeSocket(self, url, opts)
    self.sockets.append(socket)
    return socket

  @property
  def socket(self):
    return self.sockets[-1]

  def channel(self, topic):
    """Most recently created transport channel for `topic`."""
    matches = [ch for s in self.sockets for ch in s.channels if ch.topic == topic]
    return matches[-1]

  def channels_for(self, topic):
    return [ch for s in self.sockets for ch in s.channels if ch.topic == topic]

  def join_count(self, topic):
    return self.joins.count(topic)


class RecordingAccessor:
  def __init__(self, token):
    self.token = token
    self.calls = []

  async def __call__(self, kind, context):
    self.calls.append((kind, context))
    if isinstance(self.token, Exception):
      raise self.token
    return self.token

  def calls_for(self, kind):
    return [ctx for k, ctx in self.calls if k == kind]


class Clock:
  def __init__(self, monkeypatch):
    self._monkeypatch = monkeypatch
    self.offset_ms = 0

  def advance(self, seconds: float) -> None:
    self.offset_ms += int(seconds * 1000)
    offset = self.offset_ms
    self._monkeypatch.setattr(tokens, "_now_ms", lambda: int(time.time() * 1000) + offset)


@pytest.fixture
def fresh_jwt():
  return mint_jwt(ttl_sec=10 * 365 * 24 * 3600)


@pytest.fixture
def explicit_jwt():
  return mint_jwt(ttl_sec=5 * 365 * 24 * 3600, iss="unit-test")


@pytest.fixture
def expired_jwt():
  return mint_jwt(ttl_sec=-3600)


@pytest.fixture
def transport():
  return FakeTransport()


@pytest.fixture
def accessor(fresh_jwt):
  return RecordingAccessor(fresh_jwt)


@pytest.fixture
def clock(monkeypatch):
  return Clock(monkeypatch)


@pytest.fixture
def lasagna(accessor, transport):
  return Lasagna(accessor, URL, socket_factory=transport)
