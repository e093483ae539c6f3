import logging
import os
from logging.handlers import RotatingFileHandler

from flask import request

FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(app):
    """Log rotativo en LOG_DIR (5MB x 5). En TESTING solo consola."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)

    if not app.config.get("TESTING"):
        log_dir = app.config["LOG_DIR"]
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(os.path.join(log_dir, "app.log"), maxBytes=5_000_000, backupCount=5,
                                      encoding="utf-8")
        handler.setFormatter(logging.Formatter(FORMAT))
        handler.setLevel(level)
        if not any(isinstance(h, RotatingFileHandler) for h in app.logger.handlers):
            app.logger.addHandler(handler)
        logging.getLogger("werkzeug").addHandler(handler)

    @app.teardown_request
    def _log_unhandled_exception(exc):
        if exc is not None:
            app.logger.error("Excepción no controlada en %s %s", request.method, request.path, exc_info=exc)
