"""
Moniteur de connectivité : état réseau et notification des reconnexions.

Le seul état conservé est la dernière joignabilité connue (hors ligne au démarrage,
pour que la première sonde réussie déclenche une synchronisation). Les callbacks
on_restored sont appelés à chaque transition hors ligne → en ligne.
"""

import logging
import threading
from typing import Callable, List, Optional

import requests

logger = logging.getLogger(__name__)


def http_probe(url: str, timeout: float = 2.0) -> Callable[[], bool]:
    """Sonde HTTP : joignable si la requête GET aboutit avec un statut < 500."""

    def probe() -> bool:
        try:
            resp = requests.get(url, timeout=timeout)
        except requests.RequestException:
            return False
        return resp.status_code < 500

    return probe


class ConnectivityMonitor:
    def __init__(self, probe: Optional[Callable[[], bool]] = None):
        self._probe = probe
        self._online = False
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], object]] = []

    def is_online(self) -> bool:
        return self._online

    def on_restored(self, callback: Callable[[], object]) -> None:
        """Enregistre un callback appelé à chaque retour du réseau."""
        self._callbacks.append(callback)

    def check(self) -> bool:
        """Exécute la sonde et met à jour l'état (mode interrogation)."""
        if self._probe is None:
            return self._online
        return self.set_online(self._probe())

    def set_online(self, online: bool) -> bool:
        """Met à jour l'état (mode notification de la plateforme). Retourne le nouvel état."""
        with self._lock:
            restored = online and not self._online
            if online != self._online:
                logger.info("Connectivité : %s", "en ligne" if online else "hors ligne")
            self._online = online

        if restored:
            for callback in list(self._callbacks):
                callback()
        return online
