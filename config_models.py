from dataclasses import dataclass


@dataclass
class AppConfig:
    name: str = "Devis"
    secret_key: str = ""
    currency: str = "EUR"
    quote_prefix: str = "DEVIS"
    date_format: str = "%d/%m/%Y"
    quote_validity_days: int = 30


@dataclass
class EmailConfig:
    enabled: bool
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    sender: str
    timeout: int = 30
    simulate_when_disabled: bool = True
