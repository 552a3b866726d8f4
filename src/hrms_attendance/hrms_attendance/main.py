from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import build_container
from .attendance.controller import register as register_attendance

logger = logging.getLogger("hrms_attendance")


def create_app(**overrides) -> Flask:
    """Build the Flask app; ``overrides`` go straight to ``build_container``."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    api_url = overrides.pop("api_url", getattr(settings, "HRMS_API_URL", None))
    container = build_container(
        api_url=api_url,
        timeout=float(getattr(settings, "REQUEST_TIMEOUT", 15)),
        include_all=bool(getattr(settings, "ROSTER_INCLUDE_ALL", True)),
        **overrides,
    )
    logger.info("[hrms-attendance] settings=%s api=%s", settings_module, api_url)

    register_attendance(app, container)
    return app
