"""
Démarrage du service de synchronisation de l'appareil : python -m scanner
"""

import logging
import signal
import threading

from scanner.config import settings
from scanner.runner import ScannerApp

logger = logging.getLogger("scanner")


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    stop_event = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    signal.signal(signal.SIGTERM, lambda *_: stop_event.set())

    app = ScannerApp(settings)
    app.start()
    logger.info("Appareil connecté à %s, %d présence(s) en attente.",
                settings.SERVER_URL, app.queue.pending_count())
    try:
        stop_event.wait()
    finally:
        app.stop()


if __name__ == "__main__":
    main()
