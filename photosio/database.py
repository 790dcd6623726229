from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_engine(database_uri: str) -> Engine:
    connect_args = {}
    if database_uri.startswith("sqlite"):
        # sessions are opened from worker threads and the fastapi threadpool
        connect_args["check_same_thread"] = False
    return create_engine(database_uri, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)
