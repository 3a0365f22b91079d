"""
Codec des jetons QR chiffrés.

Format externe : {"data": <chiffré hex>, "iv": <IV hex>}
Format interne : {"nonce", "sessionId", "studentId", "timestamp"} en JSON compact trié.

- La clé AES-256 est dérivée une seule fois du secret partagé par scrypt (sel fixe)
- Chaque encodage tire un IV aléatoire de 12 octets → chiffrés différents pour un même payload
- AES-GCM authentifie le chiffré : un bit modifié dans l'IV ou le chiffré → DecodeError
- Le nonce du payload est de l'entropie, jamais une clé
"""

import hashlib
import json
import logging
import os
import secrets
import time
from datetime import datetime, timezone
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError

from app.exceptions import DecodeError
from app.schemas.qr import QRToken, TokenPayload

logger = logging.getLogger(__name__)

KDF_SALT = b"attendance-qr-token"
KDF_N = 2 ** 14
KDF_R = 8
KDF_P = 1
KEY_LENGTH = 32
IV_LENGTH = 12
NONCE_BYTES = 16


def derive_key(secret: str) -> bytes:
    """Dérive la clé AES-256 du secret partagé (scrypt, volontairement lent)."""
    return hashlib.scrypt(
        secret.encode("utf-8"),
        salt=KDF_SALT,
        n=KDF_N,
        r=KDF_R,
        p=KDF_P,
        dklen=KEY_LENGTH,
    )


def serialize_payload(payload: TokenPayload) -> bytes:
    """Sérialisation déterministe : clés camelCase triées, séparateurs compacts."""
    data = payload.model_dump(mode="json", by_alias=True)
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def new_payload(student_id: Optional[str] = None, session_id: Optional[str] = None) -> TokenPayload:
    """
    Construit un payload fraîchement émis.
    Sans session_id, le serveur en génère un (session-<epoch ms>).
    """
    return TokenPayload(
        student_id=student_id or None,
        session_id=session_id or f"session-{int(time.time() * 1000)}",
        issued_at=datetime.now(timezone.utc),
        nonce=secrets.token_hex(NONCE_BYTES),
    )


class TokenCodec:
    """Chiffre/déchiffre les payloads de jetons avec une clé dérivée du secret partagé."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Le secret de chiffrement des QR codes ne peut pas être vide.")
        self._aead = AESGCM(derive_key(secret))

    def encode(self, payload: TokenPayload) -> QRToken:
        iv = os.urandom(IV_LENGTH)
        ciphertext = self._aead.encrypt(iv, serialize_payload(payload), None)
        return QRToken(data=ciphertext.hex(), iv=iv.hex())

    def decode(self, token: QRToken) -> TokenPayload:
        """
        Déchiffre et valide un jeton.
        Lève DecodeError si le chiffré ou l'IV sont malformés, si l'authentification
        échoue ou si le contenu n'est pas un payload valide.
        """
        try:
            iv = bytes.fromhex(token.iv)
            ciphertext = bytes.fromhex(token.data)
        except ValueError as exc:
            raise DecodeError("Jeton QR invalide ou corrompu.") from exc

        if len(iv) != IV_LENGTH:
            raise DecodeError("Jeton QR invalide ou corrompu.")

        try:
            plaintext = self._aead.decrypt(iv, ciphertext, None)
        except (InvalidTag, ValueError) as exc:
            logger.debug("Échec d'authentification du jeton QR")
            raise DecodeError("Jeton QR invalide ou corrompu.") from exc

        try:
            return TokenPayload.model_validate(json.loads(plaintext))
        except (ValueError, ValidationError) as exc:
            raise DecodeError("Jeton QR invalide ou corrompu.") from exc
