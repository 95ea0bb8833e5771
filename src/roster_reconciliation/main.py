from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .api.controller import register as register_api
from .config import get_settings_module
from .container import build_container
from .core.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(*, store=None, clock=None, start_engine: Optional[bool] = None) -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    container = build_container(settings, store=store, clock=clock)
    app.extensions["roster_container"] = container
    logger.info("Settings %s loaded (store=%s)", settings_module, type(container.store).__name__)

    register_api(app, container)

    # The live engine is for long-running processes; tests read on demand.
    if start_engine is None:
        start_engine = not app.config["TESTING"]
    if start_engine:
        container.engine.start()

    return app


if __name__ == "__main__":
    create_app().run()
