"""
Planificateur APScheduler de l'appareil de scan.

Deux déclencheurs du cycle de synchronisation :
- un intervalle fixe (SYNC_INTERVAL_SECONDS, 5 s par défaut)
- le retour du réseau, détecté par la sonde de connectivité interrogée
  toutes les CONNECTIVITY_POLL_SECONDS

Les deux peuvent se chevaucher : la garde du coordinateur garantit
qu'un seul cycle tourne à la fois.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from scanner.config import ScannerSettings
from scanner.connectivity import ConnectivityMonitor, http_probe
from scanner.coordinator import CycleStatus, SyncCoordinator
from scanner.ingestion_client import IngestionClient
from scanner.pending_queue import PendingQueue
from scanner.recorder import AttendanceRecorder

logger = logging.getLogger(__name__)


class SyncRunner:
    def __init__(self, coordinator: SyncCoordinator, connectivity: ConnectivityMonitor,
                 interval_seconds: int = 5, poll_seconds: int = 10, scheduler=None):
        self.coordinator = coordinator
        self.connectivity = connectivity
        self.interval_seconds = interval_seconds
        self.poll_seconds = poll_seconds
        self.scheduler = scheduler or BackgroundScheduler()
        self.connectivity.on_restored(self._on_restored)

    def _on_restored(self) -> None:
        report = self.coordinator.run_cycle()
        logger.info("Réseau rétabli, cycle %s", report.status.value)

    def _tick(self) -> None:
        report = self.coordinator.run_cycle()
        if report.status in (CycleStatus.COMPLETED, CycleStatus.FAILED):
            logger.info(
                "Cycle %s : %d confirmés, %d doublons, %d échecs",
                report.status.value, report.confirmed, report.duplicates, report.failed,
            )

    def start(self) -> None:
        """Démarre les jobs en arrière-plan ; une sonde immédiate déclenche la première synchronisation."""
        self.scheduler.add_job(
            self._tick,
            trigger="interval",
            seconds=self.interval_seconds,
            id="attendance_sync_cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self.connectivity.check,
            trigger="interval",
            seconds=self.poll_seconds,
            id="connectivity_probe",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(
            "Synchronisation démarrée : cycle toutes les %ds, sonde réseau toutes les %ds.",
            self.interval_seconds, self.poll_seconds,
        )
        self.connectivity.check()

    def stop(self) -> None:
        """Arrête le planificateur ; un cycle en cours termine normalement."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Synchronisation arrêtée.")


class ScannerApp:
    """Assemble les composants de l'appareil à partir de la configuration."""

    def __init__(self, config: ScannerSettings):
        self.queue = PendingQueue(config.QUEUE_DATABASE_URL)
        self.client = IngestionClient(
            config.SERVER_URL,
            config.API_TOKEN,
            timeout=config.REQUEST_TIMEOUT_SECONDS,
        )
        self.connectivity = ConnectivityMonitor(
            http_probe(f"{config.SERVER_URL.rstrip('/')}/api/health", config.CONNECTIVITY_PROBE_TIMEOUT_SECONDS)
        )
        self.coordinator = SyncCoordinator(
            self.queue, self.client, self.connectivity, batch_size=config.SYNC_BATCH_SIZE,
        )
        self.recorder = AttendanceRecorder(self.queue, self.client, self.connectivity)
        self.runner = SyncRunner(
            self.coordinator,
            self.connectivity,
            interval_seconds=config.SYNC_INTERVAL_SECONDS,
            poll_seconds=config.CONNECTIVITY_POLL_SECONDS,
        )

    def start(self) -> None:
        self.runner.start()

    def stop(self) -> None:
        self.runner.stop()
        self.client.close()
        self.queue.close()
