"""
Router pour les jetons QR chiffrés : émission et décodage faisant autorité.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_token_codec, require_caller
from app.exceptions import DecodeError, InvalidClaimError, StudentNotFoundError
from app.schemas.qr import QRDecodeRequest, QRDecodeResponse, QRGenerateRequest, QRGenerateResponse
from app.services import qr_service
from app.services.token_codec import TokenCodec

router = APIRouter(
    prefix="/api/qr",
    tags=["QR codes"],
    dependencies=[Depends(require_caller)],
)


@router.post("/generate", response_model=QRGenerateResponse, summary="Émettre un QR code chiffré")
def generate_qr(
    data: QRGenerateRequest,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """
    Émet un jeton QR pour un élève et/ou une session.
    Sans sessionId, un identifiant de session est généré.
    Sans studentId, le QR est un QR de session : l'appareil fournit l'élève au scan.
    """
    try:
        return qr_service.issue_token(db, codec, data.student_id, data.session_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidClaimError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/decode", response_model=QRDecodeResponse, summary="Décoder un QR code scanné")
def decode_qr(data: QRDecodeRequest, codec: TokenCodec = Depends(get_token_codec)):
    """
    Déchiffre une enveloppe {encrypted, iv} relayée par un appareil de scan.
    Toute erreur de déchiffrement renvoie un message générique (400).
    """
    try:
        payload = qr_service.decode_token(codec, data.encrypted, data.iv)
    except DecodeError:
        raise HTTPException(status_code=400, detail="QR code invalide.")
    return QRDecodeResponse(data=payload)
