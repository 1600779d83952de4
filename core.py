# core.py
import os
import logging
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, flash, redirect, url_for, request

from models import db
from storage import LocalStorage
from stores import ClientStore, FormOptions, ReminderStore, ScheduleStore, ServiceStore


class OnTurnBaseApp:
    """Base application of the onTurn dashboard"""

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        # Flask app
        self.app = Flask(__name__, instance_relative_config=True)

        # logging goes first, config errors must be visible
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        )
        self.logger = logging.getLogger("OnTurn")

        # Configuration: environment, or an explicit mapping in tests
        self._load_config(config)

        # Flask config
        self.app.config["SECRET_KEY"] = self.secret_key
        self.app.config["SQLALCHEMY_DATABASE_URI"] = self.database_url
        self.app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
        if config:
            self.app.config.update(
                {k: v for k, v in config.items() if k not in self.SETTINGS}
            )

        # SQLAlchemy
        db.init_app(self.app)

        # Storage table
        self._init_db()

        # Entity stores
        self._init_stores()

        # Errors
        self._register_error_handlers()

        self.app.extensions["onturn"] = self
        self.logger.info("onTurn application initialized")

    # -------------------------------------------------

    SETTINGS = ("SECRET_KEY", "DATABASE_URL", "LOG_LEVEL", "PORT")

    def _load_config(self, config: Optional[Mapping[str, Any]]):
        if config is None:
            load_dotenv()
            config = {}

        def setting(name: str, default: Optional[str] = None) -> Optional[str]:
            if name in config:
                return config[name]
            return os.getenv(name, default)

        self.secret_key = setting("SECRET_KEY", "dev-secret-key")
        self.database_url = setting("DATABASE_URL") or (
            "sqlite:///" + os.path.join(self.app.instance_path, "onturn.db")
        )

        level_name = str(setting("LOG_LEVEL", "INFO")).upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise RuntimeError(f"LOG_LEVEL has unknown value: {level_name}")
        logging.getLogger().setLevel(level)

        try:
            self.port = int(setting("PORT", "5000"))
        except (TypeError, ValueError):
            raise RuntimeError("PORT must be a number")

        self.logger.info("Configuration loaded (SECRET_KEY, DATABASE_URL, LOG_LEVEL, PORT)")

    # -------------------------------------------------

    def _init_db(self):
        os.makedirs(self.app.instance_path, exist_ok=True)

        with self.app.app_context():
            db.create_all()
            self.logger.info("Database initialized")

    # -------------------------------------------------

    def _init_stores(self):
        self.storage = LocalStorage()
        self.schedules = ScheduleStore(self.storage)
        self.clients = ClientStore(self.storage)
        self.services = ServiceStore(self.storage)
        self.reminders = ReminderStore(self.storage)

        with self.app.app_context():
            for store in self.stores:
                store.load()
            self.form_options = FormOptions(self.clients, self.services)

    @property
    def stores(self):
        return (self.schedules, self.clients, self.services, self.reminders)

    # -------------------------------------------------

    def _register_error_handlers(self):
        @self.app.errorhandler(404)
        def not_found(error):
            self.logger.warning(f"404: {request.path}")
            return "Page not found", 404

        @self.app.errorhandler(500)
        def internal_error(error):
            self.logger.exception("500 error")
            db.session.rollback()
            flash("Internal server error", "error")
            return redirect(url_for("index"))

    # -------------------------------------------------

    def run(self, port: Optional[int] = None, debug: bool = False):
        port = port or self.port
        self.logger.info(f"Flask started on port {port}")
        # one request at a time, stores have a single writer
        self.app.run(host="0.0.0.0", port=port, debug=debug, threaded=False)
