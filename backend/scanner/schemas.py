"""
Schémas Pydantic côté appareil : présence à enregistrer et réponse du serveur
à POST /api/attendance/sync.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class AttendanceClaim(BaseModel):
    """Présence non encore confirmée par le serveur."""
    student_id: str
    session_id: str
    timestamp: datetime

    @field_validator("student_id", "session_id")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("L'identifiant élève et l'identifiant de session sont obligatoires.")
        return v.strip()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class LogEcho(CamelModel):
    """Log renvoyé par le serveur dans `failed` ou `duplicates`."""
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    time: Optional[str] = None
    local_id: Optional[int] = None


class SyncedRecord(CamelModel):
    """Présence canonique créée par le serveur ; seul le local_id sert à l'appareil."""
    id: Optional[str] = None
    student_id: Optional[str] = None
    session_id: Optional[str] = None
    local_id: Optional[int] = None


class FailedEcho(CamelModel):
    log: LogEcho
    error: str


class BatchResults(CamelModel):
    success: List[SyncedRecord] = []
    failed: List[FailedEcho] = []
    duplicates: List[LogEcho] = []


class SyncBatchResponse(CamelModel):
    message: str = ""
    results: BatchResults

    def confirmed_ids(self) -> List[int]:
        return [r.local_id for r in self.results.success if r.local_id is not None]

    def duplicate_ids(self) -> List[int]:
        return [log.local_id for log in self.results.duplicates if log.local_id is not None]

    def failed_ids(self) -> List[int]:
        return [f.log.local_id for f in self.results.failed if f.log.local_id is not None]
