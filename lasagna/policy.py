"""Topic naming convention that decides whether a channel needs a JWT."""
from typing import Any

from lasagna.config import NO_AUTH_MARKER


def should_auth(topic: Any) -> bool:
  """
  Check whether joining `topic` requires a bearer token.

  Topics look like "push-no_auth:some:such". The first colon segment is
  split on hyphens; the channel is public iff one of those components is
  the no-auth marker.

  Args:
    topic: Channel topic

  Returns:
    False for auth-exempt topics, True otherwise
  """
  if not isinstance(topic, str):
    return True
  prefix = topic.split(":", 1)[0]
  return NO_AUTH_MARKER not in prefix.split("-")
