"""Internal constants shared across the library."""

BASE_URL = "https://api.mixpanel.com/"
API_VERSION = "1.0"
USER_AGENT = f"Mozilla/5.0 (compatible; Desktop; Mixpanel Python API v{API_VERSION})"

# Values sent as ``mp_lib`` / ``$os`` in every event's properties.
LIBRARY_TAG = "python/pymixpanel"
OPERATING_SYSTEM = "Python"

TRACK_ENDPOINT = "track"
ENGAGE_ENDPOINT = "engage"

# Both endpoints accept up to 50 messages in a single batch request.
MAX_BATCH_SIZE = 50

STORE_FILE_NAME = "mixpanel.dat"
STORE_FORMAT_VERSION = 1
