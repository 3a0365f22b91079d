"""
Service d'émission et de décodage des jetons QR.

Flux d'émission :
  1. Au moins un identifiant (élève ou session) est requis
  2. Si un élève est fourni, il doit exister dans le référentiel
  3. Payload frais (horodatage + nonce aléatoire), chiffré par le TokenCodec
  4. L'enveloppe {data, iv} est encodée dans une image QR PNG (data URL)

Le décodage fait autorité : seul le serveur détient le secret de dérivation,
les appareils ne font que relayer les octets chiffrés.
"""

import base64
import io
import json
import logging
from typing import Optional

import qrcode
from sqlalchemy.orm import Session

from app.exceptions import InvalidClaimError, StudentNotFoundError
from app.schemas.qr import QRGenerateResponse, QRToken, TokenPayload
from app.services.roster_service import student_exists
from app.services.token_codec import TokenCodec, new_payload

logger = logging.getLogger(__name__)


def generate_qr_image(content: str) -> bytes:
    """Génère une image PNG du QR code encodant le contenu donné."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=1,
    )
    qr.add_data(content)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def to_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


def issue_token(
    db: Session,
    codec: TokenCodec,
    student_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> QRGenerateResponse:
    """
    Émet un jeton QR chiffré pour un élève et/ou une session.

    Lève InvalidClaimError si aucun identifiant n'est fourni,
    StudentNotFoundError si l'élève est inconnu du référentiel.
    """
    if not student_id and not session_id:
        raise InvalidClaimError("L'identifiant élève ou l'identifiant de session est obligatoire.")

    if student_id and not student_exists(db, student_id):
        raise StudentNotFoundError("Élève introuvable.")

    payload = new_payload(student_id=student_id, session_id=session_id)
    token = codec.encode(payload)

    png = generate_qr_image(json.dumps(token.model_dump(), separators=(",", ":")))

    logger.info(
        "Jeton QR émis : session %s, élève %s",
        payload.session_id, payload.student_id or "(diffusion)",
    )

    return QRGenerateResponse(qr_code=to_data_url(png), data=payload, encrypted=token)


def decode_token(codec: TokenCodec, encrypted: str, iv: str) -> TokenPayload:
    """Déchiffre une enveloppe relayée par un appareil. Lève DecodeError si invalide."""
    return codec.decode(QRToken(data=encrypted, iv=iv))
