import os

from . import env_bool
from .base import *  # noqa: F401,F403

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
