from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from geetha_tex.config import Config

DATABASE_URL = Config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def init_db(bind=None):
    # Import so the table is registered on Base.metadata
    from geetha_tex import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
