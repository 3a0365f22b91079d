"""
Modèle SQLAlchemy de la file locale des présences en attente (SQLite sur l'appareil).

- local_id : séquence locale AUTOINCREMENT (jamais réutilisée après suppression)
- synced   : passe à True une seule fois, uniquement par le coordinateur de synchronisation
- Les enregistrements synchronisés sont supprimés par sweep_synced()
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PendingRecord(Base):
    """Présence capturée localement, en attente de confirmation par le serveur."""
    __tablename__ = "pending_attendance"
    __table_args__ = {"sqlite_autoincrement": True}

    local_id = Column(Integer, primary_key=True, autoincrement=True)

    student_id = Column(String(64), nullable=False)
    session_id = Column(String(128), nullable=False)
    timestamp = Column(DateTime, nullable=False)    # Instant du scan (UTC naïf)

    created_at = Column(DateTime, nullable=False)   # Instant de mise en file (UTC naïf)
    synced = Column(Boolean, nullable=False, default=False, index=True)
    synced_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<PendingRecord {self.local_id} élève={self.student_id} "
            f"session={self.session_id} synced={self.synced}>"
        )
