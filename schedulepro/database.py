from sqlmodel import create_engine, Session

from .config import DATABASE_URL

if not DATABASE_URL or DATABASE_URL == "":
    raise ValueError("DATABASE URL not set")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def get_session():
    with Session(engine) as session:
        yield session
