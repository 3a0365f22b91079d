"""
Client HTTP du serveur de référence (contrat réseau de l'ingestion).

- POST /api/attendance/sync : {logs: [{studentId, sessionId, time, localId}]}
- POST /api/qr/decode       : {encrypted, iv} → {data: payload}

Chaque appel porte un délai maximal ; un délai dépassé, une erreur réseau,
un statut non 2xx ou une réponse illisible deviennent une TransportError.
"""

import logging
from datetime import timezone
from typing import Any, Dict, Optional, Sequence

import requests
from pydantic import ValidationError

from scanner.exceptions import InvalidTokenError, TransportError
from scanner.schemas import SyncBatchResponse

logger = logging.getLogger(__name__)


def to_log(item: Any) -> Dict[str, Any]:
    """
    Convertit une présence (PendingRecord ou AttendanceClaim) en log réseau.
    Les horodatages naïfs sont en UTC.
    """
    timestamp = item.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return {
        "studentId": item.student_id,
        "sessionId": item.session_id,
        "time": timestamp.isoformat().replace("+00:00", "Z"),
        "localId": getattr(item, "local_id", None),
    }


class IngestionClient:
    """Accès au serveur de référence via une session requests partagée."""

    def __init__(self, base_url: str, api_token: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()
        self._http.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })

    def _post(self, path: str, body: Dict[str, Any]) -> requests.Response:
        try:
            return self._http.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"Serveur injoignable ({path}) : {exc}") from exc

    def submit_batch(self, items: Sequence[Any]) -> SyncBatchResponse:
        """Soumet un batch de présences et retourne le rapport par présence."""
        resp = self._post("/api/attendance/sync", {"logs": [to_log(item) for item in items]})

        if not resp.ok:
            raise TransportError(f"Synchronisation refusée : HTTP {resp.status_code}")

        try:
            report = SyncBatchResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError("Réponse de synchronisation illisible.") from exc

        logger.debug("Batch soumis : %d présences, %s", len(items), report.message)
        return report

    def decode_token(self, encrypted: str, iv: str) -> Dict[str, Any]:
        """
        Fait déchiffrer une enveloppe QR par le serveur.
        Lève InvalidTokenError si le serveur refuse le jeton (400).
        """
        resp = self._post("/api/qr/decode", {"encrypted": encrypted, "iv": iv})

        if resp.status_code == 400:
            raise InvalidTokenError("QR code invalide.")
        if not resp.ok:
            raise TransportError(f"Décodage impossible : HTTP {resp.status_code}")

        try:
            return resp.json()["data"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportError("Réponse de décodage illisible.") from exc

    def close(self) -> None:
        self._http.close()
