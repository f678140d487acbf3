from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from storefront import config  # импортируем настройки

Base = declarative_base()

# Создаём engine
if config.DATABASE_URL.startswith("sqlite"):
    # SQLite (локально и в тестах): одно соединение на все потоки
    engine = create_engine(
        config.DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(
        config.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )

# Фабрика сессий
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency для FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Единица работы: commit при успехе, rollback при любой ошибке."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
