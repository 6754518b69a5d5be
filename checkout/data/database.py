# checkout/data/database.py
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from checkout.utils.settings import DATABASE_URL

engine = create_engine(DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db():
    #sesja na request, zamykana po odpowiedzi
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ping(db) -> bool:
    db.execute(text("SELECT 1"))
    return True
