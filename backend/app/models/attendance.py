"""
Modèle SQLAlchemy pour les présences canoniques (serveur de référence).

Architecture offline-first :
- timestamp    : instant du scan (horloge de l'appareil ou du jeton), UTC naïf
- recorded_at  : instant de réception par le serveur
- time_bucket  : floor(epoch(timestamp) / fenêtre de déduplication)
- La contrainte unique (student_id, session_id, time_bucket) est la garde
  de déduplication faisant autorité ; la recherche par fenêtre n'est qu'une optimisation.
"""

import uuid
from sqlalchemy import BigInteger, Column, DateTime, String, UniqueConstraint, Uuid, func

from app.database import Base


class Attendance(Base):
    """Présence confirmée, une par (élève, session) dans la fenêtre de déduplication."""
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("student_id", "session_id", "time_bucket", name="uq_attendance_student_session_bucket"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    student_id = Column(String(64), nullable=False, index=True)
    session_id = Column(String(128), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    time_bucket = Column(BigInteger, nullable=False)

    recorded_at = Column(DateTime, nullable=False)
    confirmed_at = Column(DateTime, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
