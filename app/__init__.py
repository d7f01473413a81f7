import logging

from flask import Flask

from config import Config
from .routes import bp as main_bp
from .selector import SheetSelector
from .stores import GoogleSheetsStore, WorkbookStore
from .writer import RowWriter


def build_store(config):
    """Create the tabular store named by SHEETS_BACKEND"""
    backend = config.get("SHEETS_BACKEND", "google")
    if backend == "workbook":
        return WorkbookStore(config["WORKBOOK_DIR"])
    if backend == "google":
        return GoogleSheetsStore.from_service_account_file(config["GOOGLE_SERVICE_ACCOUNT_KEY"])
    raise ValueError(f"Unknown SHEETS_BACKEND: {backend}")


def create_app(config_class=Config, store=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Routing table is validated once at startup
    app.extensions["sheet_selector"] = SheetSelector.from_config(app.config["SHEET_TARGETS"])

    # One store per process, shared by every request
    if store is None:
        store = build_store(app.config)
    app.extensions["row_writer"] = RowWriter(
        store,
        tab_name=app.config.get("SHEET_TAB_NAME"),
        default_tab_name=app.config.get("DEFAULT_TAB_NAME", "Sheet1"),
    )

    # Register blueprints
    app.register_blueprint(main_bp)

    return app
