from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from infrastructure.database.models import Base
from settings import settings


class Database:
    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url or settings.DATABASE_URL

        engine_kwargs = {"future": True}
        if self.db_url.startswith("sqlite") and ":memory:" in self.db_url:
            # одна и та же in-memory база для всех сессий
            engine_kwargs.update(
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )

        self.engine = create_engine(self.db_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

    def get_session(self) -> Session:
        return self.SessionLocal()

    def ping(self) -> None:
        """Проверяет соединение. Бросает исключение SQLAlchemy, если БД недоступна."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def create_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
