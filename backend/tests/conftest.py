"""
Configuration partagée pour tous les tests.

- client    : BDD mockée (MagicMock) et authentification court-circuitée
- db_session: vraie session SQLite en mémoire, pour les invariants de déduplication
- db_client : client HTTP branché sur db_session
- queue     : file locale de l'appareil sur un fichier SQLite temporaire
"""

import os

# Doit précéder tout import de app.* (Settings lu à l'import)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("QR_SECRET", "test-secret")
os.environ.setdefault("API_TOKENS", "test-token")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

import app.models  # noqa: F401
from app.database import Base, get_db
from app.dependencies import require_caller
from app.main import app
from app.models.student import Student
from scanner.pending_queue import PendingQueue


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[require_caller] = lambda: "test-token"
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def unauthenticated_client():
    """Client HTTP sans court-circuit de l'authentification."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Session SQLite en mémoire avec le schéma complet."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def db_client(db_session):
    """Client HTTP branché sur la vraie session SQLite."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[require_caller] = lambda: "test-token"
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def add_student(db_session):
    """Ajoute un élève au référentiel."""
    def _add(student_id: str, name: str = "Alice Dupont") -> Student:
        student = Student(student_id=student_id, name=name)
        db_session.add(student)
        db_session.commit()
        return student
    return _add


@pytest.fixture
def queue(tmp_path):
    """File locale de l'appareil sur un fichier SQLite temporaire."""
    q = PendingQueue(f"sqlite:///{tmp_path / 'pending.db'}")
    yield q
    q.close()
