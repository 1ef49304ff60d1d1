from . import env_bool
from .base import *  # noqa: F401,F403

DEBUG = False

AUTO_INIT_DB = env_bool("AUTO_INIT_DB", False)
