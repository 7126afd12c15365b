"""Internal constants shared across the library."""

from __future__ import annotations

ACCEPT = "application/json, text/plain, */*"
USER_AGENT = "quvo-python/1"

DEFAULT_CLIENT = "martin-marietta"

#: Token used when the backend authenticates by cookie and returns no token.
SESSION_BASED_TOKEN = "session-based-auth"

# ------------------------------------------------------------------
# Durable storage keys
# ------------------------------------------------------------------

AUTH_TOKEN_KEY = "auth_token"
USER_DATA_KEY = "user_data"
CACHE_KEY_PREFIX = "cache:"

# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

LOGIN_ENDPOINT = "/auth/login"
PROJECTS_ENDPOINT = "/projects"
DASHBOARD_ENDPOINT = "/dashboard/initial-fetch"
NOTIFICATIONS_ENDPOINT = "/notifications"
HEALTH_ENDPOINT = "/health"
CLIENTS_ENDPOINT = "/clients"

# ------------------------------------------------------------------
# Cache TTLs (seconds)
# ------------------------------------------------------------------

DEFAULT_REFERENCE_TTL: float = 10 * 60
DEFAULT_INVENTORY_TTL: float = 2 * 60

#: Key segments that mark frequently changing inventory data.
INVENTORY_KEY_MARKERS: tuple[str, ...] = ("bays", "baydata", "notifications")

# ------------------------------------------------------------------
# Geo
# ------------------------------------------------------------------

#: Mean Earth radius in statute miles.  Radius filters are in miles too.
EARTH_RADIUS_MILES = 3959.0
