from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Firebase
    FIREBASE_CREDENTIALS: str = "serviceAccountKey.json"
    PROJECT_ID: str = "gym-kiosk"

    # Face model
    FACE_MODEL_PATH: str = "models/face_embedding_model.pth"
    EMBEDDING_SIZE: int = 128
    MATCH_THRESHOLD: float = 0.55
    DETECTOR_TIMEOUT_SECONDS: float = 5.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_DIR: str = "logs"
    API_TOKEN: Optional[str] = None

    # Kiosk
    KIOSK_POLL_INTERVAL: float = 0.5
    KIOSK_CAMERA_INDEX: int = 0
    CHECKIN_COOLDOWN_MINUTES: int = 60
    CHECKIN_LEAD_MINUTES: int = 15
    DETECT_LEAD_MINUTES: int = 30

    # Public timetable
    GYM_NAME: str = "Flow State BJJ"
    GYM_LOCATION: str = "Chelsea Heights, VIC"

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = True


# Global settings instance
settings = Settings()
