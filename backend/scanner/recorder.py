"""
Point d'entrée d'un scan sur l'appareil : du QR code à la présence enregistrée.

Flux :
  1. Reconnaissance de l'enveloppe chiffrée (qr_reader), sinon InvalidTokenError
  2. Décodage faisant autorité (par défaut : le serveur via POST /api/qr/decode)
  3. Construction de la présence (élève du jeton, ou fourni par l'opérateur pour un QR de session)
  4. En ligne → envoi direct (batch d'une présence) ; hors ligne ou erreur réseau → mise en file
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from scanner.exceptions import ClaimRejectedError, InvalidTokenError, TransportError
from scanner.qr_reader import sniff_envelope
from scanner.schemas import AttendanceClaim

logger = logging.getLogger(__name__)


class RecordOutcome(str, enum.Enum):
    SUBMITTED = "SUBMITTED"   # Confirmée par le serveur
    DUPLICATE = "DUPLICATE"   # Déjà connue du serveur
    QUEUED = "QUEUED"         # En file, sera envoyée au prochain cycle


class AttendanceRecorder:
    def __init__(self, queue, client, connectivity, decoder: Optional[Callable[[str, str], Dict[str, Any]]] = None):
        self.queue = queue
        self.client = client
        self.connectivity = connectivity
        self.decoder = decoder or client.decode_token

    def record(self, claim: AttendanceClaim) -> RecordOutcome:
        """
        Enregistre une présence : envoi direct si le réseau est disponible,
        sinon mise en file locale.
        Lève ClaimRejectedError si le serveur refuse la présence (non rejouable).
        """
        if not self.connectivity.is_online():
            self.queue.enqueue(claim)
            return RecordOutcome.QUEUED

        try:
            report = self.client.submit_batch([claim])
        except TransportError as exc:
            logger.warning("Envoi direct impossible, mise en file : %s", exc)
            self.queue.enqueue(claim)
            return RecordOutcome.QUEUED

        if report.results.success:
            return RecordOutcome.SUBMITTED
        if report.results.duplicates:
            return RecordOutcome.DUPLICATE
        if report.results.failed:
            raise ClaimRejectedError(report.results.failed[0].error)

        # Réponse vide : on garde la présence pour le prochain cycle
        self.queue.enqueue(claim)
        return RecordOutcome.QUEUED

    def record_scan(
        self,
        text: str,
        student_id: Optional[str] = None,
        scanned_at: Optional[datetime] = None,
    ) -> RecordOutcome:
        """
        Traite le texte brut d'un QR code scanné.
        student_id est obligatoire pour un QR de session (sans élève).
        L'horodatage de la présence est l'instant du scan sur l'appareil.
        """
        envelope = sniff_envelope(text)
        if envelope is None:
            raise InvalidTokenError("QR code invalide.")

        payload = self.decoder(envelope.data, envelope.iv)

        try:
            claim = AttendanceClaim(
                student_id=payload.get("studentId") or student_id or "",
                session_id=payload.get("sessionId") or "",
                timestamp=scanned_at or datetime.now(timezone.utc),
            )
        except ValidationError as exc:
            raise ClaimRejectedError(
                "L'identifiant élève et l'identifiant de session sont obligatoires."
            ) from exc

        return self.record(claim)
