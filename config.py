"""Configuration loading: YAML file with environment-variable overrides."""

from __future__ import annotations

import logging
import os
import secrets

import yaml

from config_models import AppConfig, EmailConfig

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")


def _flag(env_key: str, raw_value) -> bool:
    return os.environ.get(env_key, str(raw_value)).lower() in _TRUTHY


def load_config():
    """Load configuration from *config.yaml* with env-var overrides.

    Environment variables take precedence over config.yaml values.
    Returns (AppConfig, EmailConfig, database_uri).
    """
    config_path = os.environ.get("CONFIG_PATH", "config.yaml")
    raw: dict = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

    app_cfg = raw.get("app", {})
    email_cfg = raw.get("email", {})
    db_cfg = raw.get("database", {})

    secret_key = os.environ.get("APP_SECRET_KEY", app_cfg.get("secret_key", ""))
    if not secret_key or secret_key == "change-me":
        secret_key = secrets.token_hex(32)
        logger.warning(
            "Using auto-generated secret key. Set APP_SECRET_KEY env var "
            "or app.secret_key in config.yaml for stable sessions across restarts."
        )

    return (
        AppConfig(
            name=app_cfg.get("name", "Devis"),
            secret_key=secret_key,
            currency=app_cfg.get("currency", "EUR"),
            quote_prefix=os.environ.get(
                "QUOTE_PREFIX", app_cfg.get("quote_prefix", "DEVIS")
            ),
            date_format=app_cfg.get("date_format", "%d/%m/%Y"),
            quote_validity_days=int(
                os.environ.get(
                    "QUOTE_VALIDITY_DAYS", app_cfg.get("quote_validity_days", 30)
                )
            ),
        ),
        EmailConfig(
            enabled=_flag("EMAIL_ENABLED", email_cfg.get("enabled", False)),
            smtp_host=os.environ.get("SMTP_HOST", email_cfg.get("smtp_host", "")),
            smtp_port=int(os.environ.get("SMTP_PORT", email_cfg.get("smtp_port", 587))),
            smtp_user=os.environ.get("SMTP_USER", email_cfg.get("smtp_user", "")),
            smtp_password=os.environ.get("SMTP_PASSWORD", email_cfg.get("smtp_password", "")),
            sender=os.environ.get("EMAIL_SENDER", email_cfg.get("sender", "")),
            timeout=int(os.environ.get("SMTP_TIMEOUT", email_cfg.get("timeout", 30))),
            simulate_when_disabled=_flag(
                "EMAIL_SIMULATE", email_cfg.get("simulate_when_disabled", True)
            ),
        ),
        os.environ.get("DATABASE_URI", db_cfg.get("uri", "sqlite:///quotes.db")),
    )


def enable_sqlite_fks(dbapi_conn, _connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
