"""
Dépendances FastAPI partagées : vérification du jeton bearer de l'appelant
et codec des jetons QR.

L'authentification complète (comptes, sessions) est hors périmètre :
le cœur de synchronisation a seulement besoin d'accepter ou refuser un appelant.
"""

import logging
import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.services.token_codec import TokenCodec

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def require_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Vérifie le jeton bearer contre API_TOKENS (comparaison à temps constant).
    Retourne le jeton accepté, utilisé comme identité de l'appelant.
    """
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Authentification requise.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    for token in settings.api_tokens:
        if secrets.compare_digest(credentials.credentials, token):
            return token

    logger.warning("Jeton bearer refusé")
    raise HTTPException(
        status_code=401,
        detail="Jeton invalide.",
        headers={"WWW-Authenticate": "Bearer"},
    )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Codec des jetons QR, construit une seule fois (la dérivation scrypt est lente)."""
    return TokenCodec(settings.QR_SECRET)
