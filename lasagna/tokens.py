"""
JWT staleness checks.

Tokens are decoded without signature verification: the server is the
authority, the client only reads `exp`/`cxp` to avoid joining with a
token it already knows is dead.
"""
from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
  """Expiry-related claims of a bearer token (seconds since epoch)."""

  model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

  exp: float = 0
  cxp: float | None = None
  iat: float | None = None
  iss: str | None = None


EXPIRED = TokenClaims(exp=0)


def _now_ms() -> int:
  return int(time.time() * 1000)


def decode_expiries(token: Any) -> TokenClaims:
  """
  Decode the expiry claims of `token`.

  Never raises. Anything that cannot be decoded comes back as the
  epoch-zero sentinel, i.e. already expired.
  """
  if not isinstance(token, str):
    return EXPIRED
  try:
    payload = jwt.decode(token, options={"verify_signature": False})
    return TokenClaims.model_validate(payload)
  except (jwt.PyJWTError, ValidationError, TypeError) as exc:
    logger.debug("Treating undecodable token as expired: %s", exc.__class__.__name__)
    return EXPIRED


def is_invalid_jwt(token: Any, now_ms: int | None = None) -> bool:
  """
  Check whether `token` is unusable for auth.

  Args:
    token: Candidate token, any type
    now_ms: Current time in milliseconds (defaults to wall clock)

  Returns:
    True if the token is not a non-empty string, fails to decode, or is
    past its `exp` or `cxp`
  """
  if not isinstance(token, str) or not token:
    return True

  now = _now_ms() if now_ms is None else now_ms
  claims = decode_expiries(token)

  if now >= claims.exp * 1000:
    return True

  if claims.cxp is not None and now >= claims.cxp * 1000:
    return True

  return False
