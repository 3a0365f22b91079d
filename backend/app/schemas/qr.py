"""
Schémas Pydantic pour les jetons QR chiffrés.
Endpoints : POST /api/qr/generate, POST /api/qr/decode
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_PATTERN = re.compile(r"^[0-9a-f]+$")


class TokenPayload(BaseModel):
    """Contenu déchiffré d'un jeton QR. student_id absent = QR de session (l'appareil fournit l'élève)."""

    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(default=None, alias="studentId")
    session_id: str = Field(alias="sessionId")
    issued_at: datetime = Field(alias="timestamp")
    nonce: str  # Entropie aléatoire par émission, pas une clé

    @field_validator("session_id")
    @classmethod
    def session_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("L'identifiant de session ne peut pas être vide.")
        return v

    @field_validator("nonce")
    @classmethod
    def nonce_is_hex(cls, v: str) -> str:
        if not HEX_PATTERN.match(v):
            raise ValueError("Le nonce doit être une chaîne hexadécimale.")
        return v


class QRToken(BaseModel):
    """Enveloppe chiffrée contenue dans l'image QR."""
    data: str  # Chiffré hexadécimal (tag d'authentification inclus)
    iv: str    # IV hexadécimal, unique par chiffrement


class QRGenerateRequest(BaseModel):
    """Au moins un des deux identifiants est requis."""
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(default=None, alias="studentId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class QRGenerateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr_code: str = Field(alias="qrCode")  # data:image/png;base64,...
    data: TokenPayload
    encrypted: QRToken


class QRDecodeRequest(BaseModel):
    encrypted: str
    iv: str


class QRDecodeResponse(BaseModel):
    data: TokenPayload
