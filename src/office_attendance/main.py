from __future__ import annotations

import atexit
import importlib
import logging
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask

from .common import http
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema
from .members.controller import register as register_members
from .presence.controller import register as register_presence
from .sessions.controller import register as register_sessions

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def load_settings() -> Any:
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def create_app(settings: Any = None, *, container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    Startup order matters: the member directory must load before the snapshot
    so that open visits can be resolved. Either failing aborts startup.
    """
    settings = settings if settings is not None else load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["API_KEYS"] = frozenset(getattr(settings, "API_KEYS", ()) or ())

    owns_container = container is None
    if owns_container:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(getattr(settings, "DB_CONFIG"))
        container = build_container(settings)

    container.startup()
    logger.info("Loaded %d members into cache.", len(container.directory))

    if app.config["API_KEYS"]:
        logger.info("Loaded %d API key(s) for authentication.", len(app.config["API_KEYS"]))
    else:
        logger.warning(
            "No API keys configured. All endpoints are public. "
            "Set SCANNER_API_KEY, DISCORD_BOT_API_KEY, or API_KEYS to require a key."
        )

    http.install(app, allowed_origins=getattr(settings, "ALLOWED_ORIGINS", "*") or "*")
    register_presence(app, container)
    register_sessions(app, container)
    register_members(app, container)
    app.extensions["office_attendance"] = container

    if bool(getattr(settings, "SWEEPER_ENABLED", True)):
        container.sweeper.start()
    if owns_container:
        atexit.register(container.shutdown)

    return app
