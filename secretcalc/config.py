"""SecretCalc Relay Configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "SecretCalc Relay"
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "secretcalc" / "data"
    upload_dir: Path = Path.home() / "secretcalc" / "uploads" / "voice"

    # Database
    db_path: Path = Path.home() / "secretcalc" / "data" / "secretcalc.db"

    # Public base URL used when building voice note links
    base_url: str = "http://localhost:3000"

    # JWT claims
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    claim_ttl_seconds: int = 0  # 0 = claims never expire

    # Pairing
    code_expire_seconds: int = 300  # 5 minutes
    code_generate_attempts: int = 5
    code_sweep_interval_seconds: int = 600  # 0 disables the sweeper
    code_retention_seconds: int = 86400  # keep expired codes a day before sweeping

    # Messages
    message_history_limit: int = 500
    voice_max_bytes: int = 10 * 1024 * 1024  # 10MB

    model_config = {"env_prefix": "SECRETCALC_"}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.upload_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate the signing secret if not set, persist it so claims survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)

        secrets_file.write_text(f"jwt_secret={self.jwt_secret}\n")


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
