"""
Configuration de l'appareil de scan via variables d'environnement (préfixe SCANNER_).
Charger depuis un fichier .env en développement.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ScannerSettings(BaseSettings):
    # Serveur de référence
    SERVER_URL: str = "http://localhost:8000"
    API_TOKEN: str = "dev-token"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    # File locale des présences en attente
    QUEUE_DATABASE_URL: str = "sqlite:///./pending_attendance.db"

    # Synchronisation
    SYNC_INTERVAL_SECONDS: int = 5
    SYNC_BATCH_SIZE: int = 500  # Limite serveur : 500 présences par requête
    CONNECTIVITY_POLL_SECONDS: int = 10
    CONNECTIVITY_PROBE_TIMEOUT_SECONDS: float = 2.0

    model_config = SettingsConfigDict(
        env_prefix="SCANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = ScannerSettings()
