# Overview: Flask extension instances and their wiring onto the app.

from __future__ import annotations

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


def init_extensions(app):
    db.init_app(app)
    # SQLite cannot ALTER most constraints in place
    migrate.init_app(app, db, render_as_batch=True)

    if app.config.get("SQLALCHEMY_DATABASE_URI", "").startswith("sqlite"):
        busy_timeout_ms = int(app.config.get("SQLITE_BUSY_TIMEOUT_MS", 5000))

        with app.app_context():
            @event.listens_for(db.engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                # Wait on a locked database before store writes fall back to retry
                cursor = dbapi_connection.cursor()
                cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
                cursor.close()
