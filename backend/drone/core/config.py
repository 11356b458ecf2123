from pydantic import BaseModel
from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class Settings(BaseModel):
    env: str = os.getenv("ENV", "development")
    project_name: str = os.getenv("PROJECT_NAME", "Drone")

    logs_dir: Path = Path(os.getenv("LOGS_DIR", "logs"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # -------------------------
    # Coordinating server
    # -------------------------
    server_host: str = os.getenv("DRONE_SERVER_HOST", "localhost")
    server_port: int = int(os.getenv("DRONE_SERVER_PORT", "8090"))
    server_path: str = os.getenv("DRONE_SERVER_PATH", "/socket")

    # -------------------------
    # Drone behaviour
    # -------------------------
    latitude: str = os.getenv("DRONE_LAT", "48.133333")
    longitude: str = os.getenv("DRONE_LON", "11.566667")
    max_wait_ms: int = int(os.getenv("DRONE_MAX_WAIT_MS", "1000"))

    # -------------------------
    # Telemetry
    # -------------------------
    otel_service_name: str = os.getenv("OTEL_SERVICE_NAME", "drone")
    otel_exporter_otlp_endpoint: str = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    otel_exporter_enabled: bool = _flag("OTEL_EXPORTER_ENABLED", "false")
    otel_log_spans: bool = _flag("OTEL_LOG_SPANS", "true")

    metrics_port: int = int(os.getenv("METRICS_PORT", "0"))

    @property
    def server_url(self) -> str:
        path = self.server_path if self.server_path.startswith("/") else f"/{self.server_path}"
        return f"ws://{self.server_host}:{self.server_port}{path}"

settings = Settings()
