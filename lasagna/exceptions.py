class LasagnaError(Exception):
  """Base exception for the Lasagna client."""


class CredentialError(LasagnaError):
  """Raised when a credential accessor cannot produce a token."""
