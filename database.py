from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
import os


def _driver_url(url: str) -> str:
    # Hosted PostgreSQL hands out postgres:// URLs; SQLAlchemy wants the driver
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg2://" + url[len(prefix):]
    return url


DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise Exception("DATABASE_URL is not set!")
DATABASE_URL = _driver_url(DATABASE_URL)

IS_SQLITE = DATABASE_URL.startswith("sqlite")

# ========================================
# 🗄 ENGINE
# server databases: small pool shared by all request sessions
# sqlite (local/tests): one file, shared across threads
# ========================================
if IS_SQLITE:
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_conn, _record):
        # fms_ship_sensors rows cascade with their ship
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_recycle=30 * 60,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# One session per request, closed when the response is sent
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
