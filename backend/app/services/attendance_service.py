"""
Service d'ingestion des présences et de déduplication (serveur de référence).

Règle centrale : une seule présence canonique par (student_id, session_id)
dans une fenêtre de ±DEDUP_WINDOW_SECONDS autour de l'horodatage du scan.
- Pré-vérification par fenêtre : applique la règle des ±fenêtre pour les envois successifs
- Contrainte unique (student_id, session_id, time_bucket) : garde contre les envois
  concurrents, une IntegrityError au commit est traduite en doublon.
  Limite : les tranches sont fixes (floor(epoch / fenêtre)). Deux envois concurrents
  de part et d'autre d'une frontière de tranche passent tous deux la pré-vérification
  et sont tous deux enregistrés. Séquentiellement, la pré-vérification les dédoublonne.
- Batch : chaque log est traité et commité indépendamment, dans l'ordre reçu ;
  l'échec d'un log n'interrompt jamais le batch
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import DuplicateAttendanceError, InvalidClaimError, StudentNotFoundError
from app.models.attendance import Attendance
from app.schemas.attendance import FailedLog, SyncedAttendance, SyncLog, SyncResults
from app.services.roster_service import student_exists

logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)


def utcnow() -> datetime:
    """Instant courant en UTC naïf (format de stockage)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Convertit en UTC naïf ; une date sans fuseau est considérée comme déjà en UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Union[str, datetime, None], default: datetime) -> datetime:
    """
    Lit un horodatage ISO-8601 (ou datetime) et le ramène en UTC naïf.
    Lève InvalidClaimError si la valeur est illisible ou n'est pas une chaîne.
    """
    if value is None or value == "":
        return default
    if not isinstance(value, (str, datetime)):
        raise InvalidClaimError(f"Horodatage invalide : {value!r}")
    try:
        return to_utc_naive(_datetime_adapter.validate_python(value))
    except (ValidationError, OverflowError) as exc:
        # OverflowError : conversion UTC hors de l'intervalle datetime (ex. 0001-01-01T00:00+01:00)
        raise InvalidClaimError(f"Horodatage invalide : {value!r}") from exc


def window_bounds(timestamp: datetime, window_seconds: int) -> Tuple[datetime, datetime]:
    """
    Bornes [timestamp - fenêtre, timestamp + fenêtre].
    Lève InvalidClaimError si la fenêtre sort de l'intervalle datetime (années 1 et 9999).
    """
    delta = timedelta(seconds=window_seconds)
    try:
        return timestamp - delta, timestamp + delta
    except OverflowError as exc:
        raise InvalidClaimError(f"Horodatage hors limites : {timestamp.isoformat()}") from exc


def _is_identifier(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def time_bucket(timestamp: datetime, window_seconds: int) -> int:
    """Tranche de temps de largeur window_seconds contenant timestamp (UTC naïf)."""
    epoch = timestamp.replace(tzinfo=timezone.utc).timestamp()
    return int(epoch // window_seconds)


def mark_single(
    db: Session,
    student_id: Optional[str],
    session_id: Optional[str],
    timestamp: Union[str, datetime, None] = None,
    window_seconds: Optional[int] = None,
) -> Attendance:
    """
    Enregistre une présence canonique.

    1. Vérifie les champs obligatoires (InvalidClaimError)
    2. Vérifie que l'élève existe dans le référentiel (StudentNotFoundError)
    3. Cherche une présence existante dans [timestamp - fenêtre, timestamp + fenêtre]
    4. Insère et commite ; doublon (pré-vérification ou contrainte unique) → DuplicateAttendanceError
    """
    received_at = utcnow()

    if not _is_identifier(student_id) or not _is_identifier(session_id):
        raise InvalidClaimError("L'identifiant élève et l'identifiant de session sont obligatoires.")

    window = window_seconds or settings.DEDUP_WINDOW_SECONDS
    scanned_at = parse_timestamp(timestamp, default=received_at)
    window_start, window_end = window_bounds(scanned_at, window)

    if not student_exists(db, student_id):
        raise StudentNotFoundError("Élève introuvable.")

    existing = db.execute(
        select(Attendance)
        .where(
            Attendance.student_id == student_id,
            Attendance.session_id == session_id,
            Attendance.timestamp.between(window_start, window_end),
        )
        .limit(1)
    ).scalar()

    if existing:
        logger.debug("Présence déjà enregistrée : élève %s, session %s", student_id, session_id)
        raise DuplicateAttendanceError("Présence déjà enregistrée pour cette session.")

    attendance = Attendance(
        student_id=student_id,
        session_id=session_id,
        timestamp=scanned_at,
        time_bucket=time_bucket(scanned_at, window),
        recorded_at=received_at,
        confirmed_at=utcnow(),
    )
    db.add(attendance)
    try:
        db.commit()
    except IntegrityError:
        # Un autre appareil a inséré la même présence entre la vérification et l'INSERT
        db.rollback()
        logger.info("Conflit d'unicité traité comme doublon : élève %s, session %s", student_id, session_id)
        raise DuplicateAttendanceError("Présence déjà enregistrée pour cette session.")

    db.refresh(attendance)
    return attendance


def mark_batch(db: Session, logs: List[SyncLog]) -> SyncResults:
    """
    Applique mark_single à chaque log, dans l'ordre reçu.

    - Confirmé → success (avec le local_id du log d'origine)
    - Doublon → duplicates (log d'origine)
    - Invalide / élève inconnu / erreur de stockage → failed {log, error}
    """
    results = SyncResults()

    for log in logs:
        try:
            attendance = mark_single(db, log.student_id, log.session_id, log.time)
        except DuplicateAttendanceError:
            results.duplicates.append(log)
            continue
        except (InvalidClaimError, StudentNotFoundError) as exc:
            results.failed.append(FailedLog(log=log, error=str(exc)))
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Erreur d'enregistrement (élève %s) : %s", log.student_id, exc)
            results.failed.append(FailedLog(log=log, error="Erreur lors de l'enregistrement."))
            continue

        synced = SyncedAttendance.model_validate(attendance)
        results.success.append(synced.model_copy(update={"local_id": log.local_id}))

    logger.info(
        "Sync : %d reçus, %d confirmés, %d doublons, %d échecs",
        len(logs), len(results.success), len(results.duplicates), len(results.failed),
    )
    return results


def list_attendance(
    db: Session,
    student_id: Optional[str] = None,
    session_id: Optional[str] = None,
    limit: int = 100,
    skip: int = 0,
) -> Tuple[List[Attendance], int]:
    """Retourne les présences filtrées (plus récentes d'abord) et le total correspondant."""
    filters = []
    if student_id:
        filters.append(Attendance.student_id == student_id)
    if session_id:
        filters.append(Attendance.session_id == session_id)

    records = db.execute(
        select(Attendance)
        .where(*filters)
        .order_by(Attendance.timestamp.desc())
        .offset(skip)
        .limit(limit)
    ).scalars().all()

    total = db.execute(
        select(func.count()).select_from(Attendance).where(*filters)
    ).scalar()

    return records, total or 0
