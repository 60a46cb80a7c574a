from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


__all__ = ["build_session_factory", "get_db"]
