"""Lasagna: JWT-aware channel sessions over a Phoenix-style socket."""
from lasagna.client import Lasagna
from lasagna.credentials import (
  CredentialAccessor,
  CredentialContext,
  CredentialKind,
  http_jwt_fetcher,
)
from lasagna.exceptions import CredentialError, LasagnaError
from lasagna.policy import should_auth
from lasagna.registry import ChannelCallbacks, ChannelHandle, EventBinding
from lasagna.session import SocketCallbacks
from lasagna.tokens import TokenClaims, decode_expiries, is_invalid_jwt

__all__ = [
  "Lasagna",
  "CredentialAccessor",
  "CredentialContext",
  "CredentialKind",
  "CredentialError",
  "LasagnaError",
  "ChannelCallbacks",
  "ChannelHandle",
  "EventBinding",
  "SocketCallbacks",
  "TokenClaims",
  "decode_expiries",
  "is_invalid_jwt",
  "should_auth",
  "http_jwt_fetcher",
]
