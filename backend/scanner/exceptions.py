"""
Exceptions de l'appareil de scan.
"""


class TransportError(Exception):
    """Échec réseau, délai dépassé ou réponse inexploitable, toujours rejouable."""


class QueueStorageError(Exception):
    """Stockage local indisponible (fatal) : l'appareil ne peut plus enregistrer de présences."""


class InvalidTokenError(ValueError):
    """QR code illisible ou refusé par le décodeur, jamais rejoué."""


class ClaimRejectedError(ValueError):
    """Présence refusée par le serveur (élève inconnu, champs invalides), jamais mise en file."""
