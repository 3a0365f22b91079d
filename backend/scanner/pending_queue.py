"""
File locale durable des présences non confirmées.

Garanties :
- Aucune présence non synchronisée n'est jamais supprimée
- Aucune déduplication à l'insertion : seul le serveur a une vue globale
- mark_synced est idempotent (confirmations dupliquées par les rejeux réseau)
- Toutes les opérations passent par un verrou unique autour du stockage
- Toute erreur de stockage est levée en QueueStorageError (fatale pour l'appareil)
"""

import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from scanner.exceptions import QueueStorageError
from scanner.models import Base, PendingRecord
from scanner.schemas import AttendanceClaim

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PendingQueue:
    """File FIFO persistante des présences en attente de synchronisation."""

    def __init__(self, database_url: str):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self._lock = threading.Lock()
        try:
            self._engine = create_engine(database_url, connect_args=connect_args)
            Base.metadata.create_all(bind=self._engine)
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"File locale indisponible : {exc}") from exc
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    def enqueue(self, claim: AttendanceClaim) -> PendingRecord:
        """Ajoute une présence en fin de file (synced=False). Ne rejette jamais un doublon."""
        record = PendingRecord(
            student_id=claim.student_id,
            session_id=claim.session_id,
            timestamp=to_utc_naive(claim.timestamp),
            created_at=utcnow(),
            synced=False,
        )
        with self._lock:
            try:
                with self._session_factory() as db:
                    db.add(record)
                    db.commit()
            except SQLAlchemyError as exc:
                logger.error("Échec de mise en file (élève %s) : %s", claim.student_id, exc)
                raise QueueStorageError(f"Impossible d'enregistrer la présence localement : {exc}") from exc

        logger.info("Présence mise en file : #%d élève %s session %s",
                    record.local_id, record.student_id, record.session_id)
        return record

    def list_unsynced(self, limit: Optional[int] = None) -> List[PendingRecord]:
        """Présences non synchronisées, dans l'ordre d'insertion."""
        query = (
            select(PendingRecord)
            .where(PendingRecord.synced.is_(False))
            .order_by(PendingRecord.local_id)
        )
        if limit is not None:
            query = query.limit(limit)

        with self._lock:
            try:
                with self._session_factory() as db:
                    return list(db.execute(query).scalars().all())
            except SQLAlchemyError as exc:
                raise QueueStorageError(f"Lecture de la file locale impossible : {exc}") from exc

    def mark_synced(self, local_id: int) -> None:
        """Marque une présence comme synchronisée. Sans effet si absente ou déjà synchronisée."""
        with self._lock:
            try:
                with self._session_factory() as db:
                    record = db.get(PendingRecord, local_id)
                    if record is None or record.synced:
                        return
                    record.synced = True
                    record.synced_at = utcnow()
                    db.commit()
            except SQLAlchemyError as exc:
                raise QueueStorageError(f"Mise à jour de la file locale impossible : {exc}") from exc

    def sweep_synced(self) -> int:
        """Supprime définitivement les présences synchronisées. Retourne le nombre supprimé."""
        with self._lock:
            try:
                with self._session_factory() as db:
                    result = db.execute(delete(PendingRecord).where(PendingRecord.synced.is_(True)))
                    db.commit()
            except SQLAlchemyError as exc:
                raise QueueStorageError(f"Nettoyage de la file locale impossible : {exc}") from exc

        if result.rowcount:
            logger.debug("%d présence(s) synchronisée(s) supprimée(s) de la file", result.rowcount)
        return result.rowcount

    def pending_count(self) -> int:
        with self._lock:
            try:
                with self._session_factory() as db:
                    return db.execute(
                        select(func.count()).select_from(PendingRecord).where(PendingRecord.synced.is_(False))
                    ).scalar() or 0
            except SQLAlchemyError as exc:
                raise QueueStorageError(f"Lecture de la file locale impossible : {exc}") from exc

    def close(self) -> None:
        """Libère les connexions au stockage (arrêt de l'appareil)."""
        self._engine.dispose()
