"""Service settings read from the environment."""

import os


LOG_LEVEL = os.environ.get("RPAAS_LOG_LEVEL", "INFO").upper()
RPAAS_CONFIG = os.environ.get("RPAAS_CONFIG", "")
