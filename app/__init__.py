import os
from pathlib import Path

from flask import Flask, current_app
from supabase import create_client

from .escalation import EscalationMonitor, ThresholdState
from .local_cache import LocalCache
from .notifications import NOTIFICATION_COLLECTION, record_defect_added
from .notifier import HttpEscalationNotifier
from .repository import DEFECT_COLLECTION, DefectRepository
from .store import RecordStore

DEFAULT_ESCALATION_API_URL = "http://localhost:3001"


def _create_supabase_client(app):
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_KEY")
    if not url or not key:
        app.logger.info("Supabase is not configured; records stay in the local cache.")
        return None
    try:
        return create_client(url, key)
    except Exception as exc:
        app.logger.warning("Could not create Supabase client: %s", exc)
        return None


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.secret_key = os.environ.get("SECRET_KEY", "dev")
    if test_config:
        app.config.update(test_config)

    supabase = _create_supabase_client(app)
    app.config["SUPABASE"] = supabase

    cache_path = (
        app.config.get("LOCAL_CACHE_PATH")
        or os.environ.get("LOCAL_CACHE_PATH")
        or Path(app.instance_path) / "local_cache.db"
    )
    cache = LocalCache(cache_path, logger=app.logger)
    app.config["LOCAL_CACHE"] = cache

    notification_store = RecordStore(
        NOTIFICATION_COLLECTION, supabase, cache, logger=app.logger
    )

    def on_defect_created(data, defect_id):
        record_defect_added(notification_store, data, defect_id)

    defect_store = RecordStore(
        DEFECT_COLLECTION,
        supabase,
        cache,
        on_create=on_defect_created,
        logger=app.logger,
    )
    app.config["DEFECT_STORE"] = defect_store
    app.config["NOTIFICATION_STORE"] = notification_store
    app.config["DEFECT_REPOSITORY"] = DefectRepository(
        defect_store,
        filter_distinct_names=app.config.get("FILTER_DISTINCT_NAMES", False),
        logger=app.logger,
    )

    notifier = app.config.get("ESCALATION_NOTIFIER") or HttpEscalationNotifier(
        os.environ.get("ESCALATION_API_URL", DEFAULT_ESCALATION_API_URL),
        logger=app.logger,
    )
    app.config["ESCALATION_MONITOR"] = EscalationMonitor(
        notifier, ThresholdState(), logger=app.logger
    )

    from .main.routes import main_bp

    app.register_blueprint(main_bp)

    return app


def get_defect_store() -> RecordStore:
    return current_app.config["DEFECT_STORE"]


def get_repository() -> DefectRepository:
    return current_app.config["DEFECT_REPOSITORY"]


def get_monitor() -> EscalationMonitor:
    return current_app.config["ESCALATION_MONITOR"]
