from typing import Iterator

from sqlalchemy.orm import Session

from academy.db.session import SessionLocal


# every request that needs DB will get a fresh session, and it will always close.
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
