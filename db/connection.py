from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config import config

engine_options = {"echo": config.SQL_ECHO, "pool_pre_ping": True}
if not config.DATABASE_URL.startswith("sqlite"):
    engine_options.update(pool_size=10, max_overflow=20)

engine = create_engine(config.DATABASE_URL, **engine_options)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
