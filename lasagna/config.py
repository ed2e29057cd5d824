"""Environment-driven settings for the Lasagna client."""
import os

LASAGNA_URL = os.getenv("LASAGNA_URL", "https://lasagna.pub/socket")
LASAGNA_JWT_TIMEOUT_SEC = float(os.getenv("LASAGNA_JWT_TIMEOUT_SEC", "10"))

# Connection/channel param carrying the bearer token
CREDENTIAL_PARAM = "jwt"

# Topic prefix component that opts a channel out of auth
NO_AUTH_MARKER = "no_auth"

KICK_EVENT = "kicked"
BAN_EVENT = "banned"
