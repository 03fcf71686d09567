from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base ORM para todos os modelos."""
    pass


def _enable_sqlite_fk(dbapi_connection, connection_record) -> None:
    # SQLite ignora FOREIGN KEY (e ON DELETE SET NULL) sem este pragma
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine + fábrica de sessões.
    Uma instância por aplicação, passada explicitamente aos serviços
    (nos testes: SQLite em memória).
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any) -> None:
        self.url = url
        self.engine: Engine = create_engine(url, echo=echo, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_fk)

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    def create_all(self) -> None:
        """Cria as tabelas se não existirem."""
        # registra os modelos no metadata
        from . import auth_models, models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager para gerenciar corretamente a sessão:
        - commit se tudo ok
        - rollback em exceções
        - close sempre
        """
        session: Session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
