"""
Lecture du texte brut d'un QR code scanné.

Ce n'est qu'une reconnaissance de format : on vérifie la forme de l'enveloppe
{"data": <hex>, "iv": <hex>} sans rien en conclure. Un QR en JSON clair
(studentId/sessionId lisibles) n'est jamais accepté comme présence :
seul le décodage par le codec fait autorité.
"""

import json
import re
from typing import Optional

from pydantic import BaseModel

_HEX = re.compile(r"^[0-9a-fA-F]+$")


class ScannedEnvelope(BaseModel):
    data: str
    iv: str


def sniff_envelope(text: str) -> Optional[ScannedEnvelope]:
    """Retourne l'enveloppe chiffrée si le texte en a la forme, sinon None."""
    try:
        content = json.loads(text)
    except (TypeError, ValueError):
        return None

    if not isinstance(content, dict):
        return None

    data, iv = content.get("data"), content.get("iv")
    if not isinstance(data, str) or not isinstance(iv, str):
        return None
    if not _HEX.match(data) or not _HEX.match(iv):
        return None

    return ScannedEnvelope(data=data.lower(), iv=iv.lower())
