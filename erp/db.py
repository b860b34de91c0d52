from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from erp import config

Base = declarative_base()


def _engine_options(url: str) -> dict:
    # pool sizing is only meaningful for server databases
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
