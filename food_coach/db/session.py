from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from food_coach.core.config import DB_PATH as DEFAULT_DB_PATH
from food_coach.db.models import Base

DB_PATH = DEFAULT_DB_PATH

# SQLite connections are shared between the request threadpool and the scheduler thread.
connect_args = {"check_same_thread": False}


def _build_engine(db_path: str):
    db_parent = Path(db_path).expanduser().resolve().parent
    db_parent.mkdir(parents=True, exist_ok=True)
    database_url = f"sqlite:///{db_path}"
    return create_engine(database_url, connect_args=connect_args)


engine = _build_engine(DB_PATH)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def configure_database(db_path: str) -> None:
    global DB_PATH, engine
    DB_PATH = db_path
    engine = _build_engine(DB_PATH)
    SessionLocal.configure(bind=engine)


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
    # Additive column upgrades for databases created before these fields existed.
    with engine.begin() as conn:
        pref_columns = {row[1] for row in conn.execute(text("PRAGMA table_info(preferences)")).fetchall()}
        if "dietary_restrictions_json" not in pref_columns:
            conn.execute(
                text("ALTER TABLE preferences ADD COLUMN dietary_restrictions_json TEXT NOT NULL DEFAULT '[]'")
            )

        log_columns = {row[1] for row in conn.execute(text("PRAGMA table_info(message_logs)")).fetchall()}
        if "message_type" not in log_columns:
            conn.execute(text("ALTER TABLE message_logs ADD COLUMN message_type VARCHAR(32)"))


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
