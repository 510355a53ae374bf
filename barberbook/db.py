# barberbook/db.py

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from barberbook.config import settings


def use_immediate_transactions(engine):
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write and ignores FOR UPDATE, so two
    bookings could both read "free" before either writes. BEGIN IMMEDIATE makes
    the second one wait until the first commits.
    """
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # required for SQLite + FastAPI

# Engine = connection to the database
engine = create_engine(
    settings.DATABASE_URL,
    echo=False,          # set to True to see SQL
    connect_args=connect_args,
)
if engine.dialect.name == "sqlite":
    use_immediate_transactions(engine)


def create_db_and_tables():
    # import so every table is registered on SQLModel.metadata
    from barberbook import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
