"""
Schémas Pydantic pour l'enregistrement et la synchronisation des présences.
Endpoints : POST /api/attendance/mark, POST /api/attendance/sync, GET /api/attendance

Le format réseau est en camelCase (studentId, sessionId, ...) ; les champs
d'identité restent optionnels à la validation pour qu'un log incomplet soit
rapporté dans `failed` au lieu de rejeter tout le batch.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

MAX_BATCH_SIZE = 500


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MarkRequest(CamelModel):
    """Présence unique envoyée directement (appareil en ligne)."""
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    timestamp: Optional[str] = None  # ISO-8601 ; absent → instant de réception


class SyncLog(CamelModel):
    """
    Une présence en attente envoyée par un appareil lors d'un cycle de synchronisation.

    Aucun type n'est imposé ici : un champ mal typé (ex. studentId numérique)
    est refusé par le service pour ce seul log, qui part dans `failed`.
    """
    student_id: Optional[Any] = None
    session_id: Optional[Any] = None
    time: Optional[Any] = None      # ISO-8601 ; absent → instant de réception
    local_id: Optional[Any] = None  # Identifiant local de l'appareil, renvoyé tel quel


class SyncRequest(CamelModel):
    """Corps de la requête batch de synchronisation."""
    logs: List[SyncLog]

    @field_validator("logs")
    @classmethod
    def logs_not_too_large(cls, v: List[SyncLog]) -> List[SyncLog]:
        if len(v) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch trop grand : maximum {MAX_BATCH_SIZE} présences par requête.")
        return v


class AttendanceResponse(CamelModel):
    """Présence canonique telle qu'enregistrée par le serveur."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    student_id: str
    session_id: str
    timestamp: datetime
    recorded_at: datetime
    confirmed_at: datetime

    @field_validator("timestamp", "recorded_at", "confirmed_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Les dates sont stockées en UTC naïf
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SyncedAttendance(AttendanceResponse):
    """Présence confirmée dans un batch, avec l'identifiant local du log d'origine."""
    local_id: Optional[Any] = None


class FailedLog(CamelModel):
    log: SyncLog
    error: str


class SyncResults(CamelModel):
    success: List[SyncedAttendance] = []
    failed: List[FailedLog] = []
    duplicates: List[SyncLog] = []


class SyncResponse(CamelModel):
    """Rapport de synchronisation : chaque log apparaît dans exactement un des trois groupes."""
    message: str
    results: SyncResults


class MarkResponse(CamelModel):
    message: str
    attendance: AttendanceResponse


class AttendanceListResponse(CamelModel):
    attendance: List[AttendanceResponse]
    total: int
    limit: int
    skip: int
