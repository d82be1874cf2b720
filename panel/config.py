import os


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Timezone para timestamps en las respuestas
    APP_TZ = os.getenv("APP_TZ", "America/Mexico_City")

    # Llave compartida con el panel (header X-PANEL-KEY)
    PANEL_API_KEY = os.getenv("PANEL_API_KEY", "")

    # Duración por trabajo cuando no llega estimado (horas)
    DEFAULT_ESTIMATE_HOURS = _float_env("DEFAULT_ESTIMATE_HOURS", 4.0)

    # 0 = sin límite (solo aplica en PostgreSQL)
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "0"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
