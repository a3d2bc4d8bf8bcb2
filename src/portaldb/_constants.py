"""Internal constants shared across the library."""

BASE_URL = "https://api.github.com"
USER_AGENT = "portaldb"
ACCEPT_HEADER = "application/vnd.github.v3+json"

DEFAULT_FILE_PATH = "data/database.json"
DEFAULT_BRANCH = "main"

# ------------------------------------------------------------------
# Durable mirror keys
# ------------------------------------------------------------------

MIRROR_DOCUMENT_KEY = "darkverse_database"
MIRROR_LAST_SAVE_KEY = "darkverse_last_save"
MIRROR_CURRENT_USER_KEY = "darkverse_current_user"

# ------------------------------------------------------------------
# Bootstrap account
# ------------------------------------------------------------------

#: Credentials of the admin synthesized when no prior state exists.
#: Stored in plaintext like every other account; change them on first use.
BOOTSTRAP_ADMIN_USERNAME = "admin"
BOOTSTRAP_ADMIN_PASSWORD = "admin"
BOOTSTRAP_ADMIN_EXPIRY_YEARS = 10

# Status codes the contents API uses for a stale or missing revision.
CONFLICT_STATUS_CODES: frozenset[int] = frozenset({409})
UNPROCESSABLE_STATUS = 422
AUTH_FAILURE_STATUS_CODES: frozenset[int] = frozenset({401, 403})
