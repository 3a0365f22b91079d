"""
Coordinateur de synchronisation : vide la file locale vers le serveur de référence.

Machine à états IDLE → SYNCING → IDLE, un seul cycle actif à la fois :
un déclenchement pendant un cycle est ignoré (ALREADY_RUNNING), le prochain
tick reprendra le travail restant.

Règles d'un cycle :
- Hors ligne → SKIPPED, file intacte
- File vide → NO_OP
- Erreur réseau / délai dépassé → FAILED, aucune modification locale
- Confirmé ou doublon → présence retirée de la file (le serveur la connaît déjà)
- Échec → présence conservée pour un prochain cycle
- QueueStorageError → levée telle quelle (stockage local indisponible, fatal)
"""

import enum
import logging
import threading
from typing import Optional

from pydantic import BaseModel

from scanner.exceptions import TransportError

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "IDLE"
    SYNCING = "SYNCING"


class CycleStatus(str, enum.Enum):
    SKIPPED = "SKIPPED"
    ALREADY_RUNNING = "ALREADY_RUNNING"
    NO_OP = "NO_OP"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"


class CycleReport(BaseModel):
    """Résumé d'un cycle de synchronisation."""
    status: CycleStatus
    submitted: int = 0
    confirmed: int = 0
    duplicates: int = 0
    failed: int = 0
    retired: int = 0
    error: Optional[str] = None


class SyncCoordinator:
    def __init__(self, queue, client, connectivity, batch_size: int = 500):
        self.queue = queue
        self.client = client
        self.connectivity = connectivity
        self.batch_size = batch_size
        self.state = SyncState.IDLE
        self._cycle_lock = threading.Lock()

    def run_cycle(self) -> CycleReport:
        """Exécute un cycle complet de synchronisation (jamais en parallèle de lui-même)."""
        if not self.connectivity.is_online():
            return CycleReport(status=CycleStatus.SKIPPED)

        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Cycle déjà en cours, déclenchement ignoré")
            return CycleReport(status=CycleStatus.ALREADY_RUNNING)

        self.state = SyncState.SYNCING
        try:
            return self._sync_pending()
        finally:
            self.state = SyncState.IDLE
            self._cycle_lock.release()

    def _sync_pending(self) -> CycleReport:
        pending = self.queue.list_unsynced(limit=self.batch_size)
        if not pending:
            return CycleReport(status=CycleStatus.NO_OP)

        try:
            report = self.client.submit_batch(pending)
        except TransportError as exc:
            logger.warning("Synchronisation reportée (%d en attente) : %s", len(pending), exc)
            return CycleReport(status=CycleStatus.FAILED, submitted=len(pending), error=str(exc))

        # Seuls les identifiants de ce batch peuvent être retirés
        submitted_ids = {record.local_id for record in pending}
        confirmed = [i for i in report.confirmed_ids() if i in submitted_ids]
        duplicates = [i for i in report.duplicate_ids() if i in submitted_ids]

        for local_id in confirmed + duplicates:
            self.queue.mark_synced(local_id)

        retired = self.queue.sweep_synced()

        for failure in report.results.failed:
            logger.warning("Présence #%s refusée par le serveur : %s", failure.log.local_id, failure.error)

        logger.info(
            "Cycle terminé : %d soumis, %d confirmés, %d doublons, %d échecs",
            len(pending), len(confirmed), len(duplicates), len(report.results.failed),
        )

        return CycleReport(
            status=CycleStatus.COMPLETED,
            submitted=len(pending),
            confirmed=len(confirmed),
            duplicates=len(duplicates),
            failed=len(report.results.failed),
            retired=retired,
        )
