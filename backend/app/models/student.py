"""
Modèle SQLAlchemy pour la table students (référentiel des élèves).

Le référentiel est un collaborateur externe du cœur de synchronisation :
seule l'existence d'un student_id y est vérifiée avant d'enregistrer une présence.
"""

import uuid
from sqlalchemy import Column, DateTime, String, Uuid, func

from app.database import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), unique=True, nullable=False, index=True)  # Identifiant externe (badge)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    course = Column(String(100), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
