from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def build_engine(connection_string: str) -> Engine:
    connect_args = {}
    if connection_string.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(connection_string, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory):
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
