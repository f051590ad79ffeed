from sqlmodel import create_engine, SQLModel, Session
from sqlalchemy.pool import StaticPool

from chalanbook.config import DATABASE_URL

connect_args = {"check_same_thread": False} if "sqlite" in DATABASE_URL else {}
engine_args = {"echo": False, "connect_args": connect_args}
if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
    # one shared connection, otherwise every session sees its own empty database
    engine_args["poolclass"] = StaticPool
engine = create_engine(DATABASE_URL, **engine_args)

def create_db_and_tables():
    import chalanbook.models  # noqa: F401  registers the tables
    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session
