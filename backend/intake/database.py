import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from intake.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


SCHEMA_SQL = """\
-- ============================================================
-- SUBMISSIONS (parent records)
-- ============================================================
CREATE TABLE IF NOT EXISTS uploads (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    upload_type           TEXT,
    contractor_name       TEXT,
    project_name          TEXT,
    notes                 TEXT,
    certifier_name        TEXT,
    certifier_designation TEXT,
    certified_date        TEXT,
    created_at            TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_uploads_type ON uploads(upload_type);
CREATE INDEX IF NOT EXISTS idx_uploads_created ON uploads(created_at);

-- ============================================================
-- SUPPORTING FILES (attachments)
-- ============================================================
CREATE TABLE IF NOT EXISTS supporting_files (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    upload_id       INTEGER NOT NULL REFERENCES uploads(id),
    doc_type        TEXT NOT NULL,
    doc_title       TEXT,
    label           TEXT,
    filename        TEXT NOT NULL,
    storage_path    TEXT NOT NULL,
    station         TEXT,
    caption         TEXT,
    latitude        REAL,
    longitude       REAL,
    file_size_bytes INTEGER,
    mime_type       TEXT,
    file_hash       TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_supporting_files_upload ON supporting_files(upload_id);
CREATE INDEX IF NOT EXISTS idx_supporting_files_type ON supporting_files(doc_type);
CREATE UNIQUE INDEX IF NOT EXISTS idx_supporting_files_path ON supporting_files(storage_path);
"""


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.close()
