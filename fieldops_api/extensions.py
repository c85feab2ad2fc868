# fieldops_api/extensions.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

# hosted Postgres hands out postgres:// URLs; SQLAlchemy wants the psycopg3 dialect
_PG_PREFIXES = ("postgres://", "postgresql://")


def normalize_db_url(url: str) -> str:
    for prefix in _PG_PREFIXES:
        if url and url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def configure_db(app, url: str):
    uri = normalize_db_url(url)
    app.config["SQLALCHEMY_DATABASE_URI"] = uri
    if uri.startswith("sqlite"):
        return

    # server databases drop idle connections; recycle before they do
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
        "pool_pre_ping": True,
        "pool_recycle": 270,
        "pool_size": 5,
        "max_overflow": 2,
        "pool_timeout": 30,
    }
