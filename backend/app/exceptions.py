"""
Exceptions métier du serveur de présences.
Héritent de ValueError : les services lèvent, les routers traduisent en HTTPException.
"""


class InvalidClaimError(ValueError):
    """Champs obligatoires manquants ou horodatage illisible, jamais rejoué."""


class StudentNotFoundError(ValueError):
    """student_id inconnu du référentiel, jamais rejoué."""


class DuplicateAttendanceError(ValueError):
    """Présence déjà enregistrée dans la fenêtre de déduplication."""


class DecodeError(ValueError):
    """Jeton QR invalide ou corrompu (chiffré, IV ou authentification)."""
