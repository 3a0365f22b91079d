"""
Router pour l'enregistrement et la synchronisation des présences.
Reçoit les présences des appareils de scan (en ligne ou après reconnexion).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_caller
from app.exceptions import DuplicateAttendanceError, InvalidClaimError, StudentNotFoundError
from app.schemas.attendance import (
    AttendanceListResponse,
    AttendanceResponse,
    MarkRequest,
    MarkResponse,
    SyncRequest,
    SyncResponse,
)
from app.services import attendance_service

router = APIRouter(
    prefix="/api/attendance",
    tags=["Présences"],
    dependencies=[Depends(require_caller)],
)


@router.post("/mark", response_model=MarkResponse, status_code=201,
             summary="Enregistrer une présence unique")
def mark_attendance(data: MarkRequest, db: Session = Depends(get_db)):
    """
    Enregistre une présence envoyée directement par un appareil en ligne.

    - 400 : champs manquants, horodatage illisible, ou présence déjà enregistrée
      dans la fenêtre de déduplication
    - 404 : élève inconnu du référentiel
    """
    try:
        attendance = attendance_service.mark_single(db, data.student_id, data.session_id, data.timestamp)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidClaimError, DuplicateAttendanceError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MarkResponse(
        message="Présence enregistrée.",
        attendance=AttendanceResponse.model_validate(attendance),
    )


@router.post("/sync", response_model=SyncResponse,
             summary="Synchroniser un batch de présences (offline → online)")
def sync_attendance(data: SyncRequest, db: Session = Depends(get_db)):
    """
    Reçoit un batch de présences enregistrées hors-ligne par un appareil.

    Comportement :
    - Chaque log est traité indépendamment : succès partiel possible
    - Doublons (même élève, même session, dans la fenêtre) rapportés dans `duplicates`
    - Champs manquants / élève inconnu rapportés dans `failed` avec la raison
    - `localId` est renvoyé tel quel pour que l'appareil retrouve ses enregistrements
    """
    if not data.logs:
        raise HTTPException(status_code=400, detail="La liste des présences est obligatoire.")

    results = attendance_service.mark_batch(db, data.logs)
    return SyncResponse(
        message=f"{len(results.success)} présence(s) synchronisée(s).",
        results=results,
    )


@router.get("", response_model=AttendanceListResponse, summary="Lister les présences")
def list_attendance(
    student_id: Optional[str] = Query(default=None, alias="studentId"),
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    limit: int = Query(default=100, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """Retourne les présences canoniques, filtrées par élève et/ou session, les plus récentes d'abord."""
    records, total = attendance_service.list_attendance(db, student_id, session_id, limit, skip)
    return AttendanceListResponse(
        attendance=[AttendanceResponse.model_validate(r) for r in records],
        total=total,
        limit=limit,
        skip=skip,
    )
