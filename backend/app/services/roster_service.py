"""
Accès au référentiel des élèves (collaborateur externe du cœur de synchronisation).
Le CRUD des élèves est géré ailleurs ; ici on ne fait que confirmer une existence.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.student import Student


def student_exists(db: Session, student_id: str) -> bool:
    """Retourne True si student_id correspond à un élève du référentiel."""
    found = db.execute(
        select(Student.id).where(Student.student_id == student_id)
    ).scalar()
    return found is not None
