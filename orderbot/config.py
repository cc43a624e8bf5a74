"""Configuration management for the order report bot."""

from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Shopify store
    shop: Optional[str] = Field(default=None)
    access_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ACCESS_TOKEN", "SHOPIFY_ACCESS_TOKEN"),
        repr=False,
    )
    shopify_api_version: str = Field(default="2023-10")

    # Report filtering
    city_filters: str = Field(
        default="Bangalore,Bengaluru",
        description="Comma-separated list of shipping cities to include",
    )
    include_default_city_aliases: bool = Field(
        default=True,
        description="Always match Bangalore/Bengaluru in addition to CITY_FILTERS",
    )
    report_variant: Literal["unfulfilled", "all"] = Field(default="unfulfilled")
    report_timezone: str = Field(default="Asia/Kolkata")
    output_dir: str = Field(default=".")

    # Email Configuration (SMTP provider, e.g., Gmail/SendGrid/SES)
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=465)
    smtp_username: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SMTP_USERNAME", "EMAIL_USER"),
    )
    smtp_password: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SMTP_PASSWORD", "EMAIL_PASS"),
        repr=False,
    )
    smtp_use_ssl: bool = Field(default=True)
    smtp_use_tls: bool = Field(default=False)
    email_from_address: Optional[str] = Field(default=None)
    email_to: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RECEIVER_EMAILS", "EMAIL_TO"),
        description="Comma-separated recipient list for the report",
    )
    email_subject_prefix: str = Field(default="Order Bot")

    # HTTP Client Defaults
    http_timeout_seconds: float = Field(default=30.0)
    http_max_attempts: int = Field(default=5)
    fetch_deadline_seconds: float = Field(default=600.0)
    fetch_max_pages: int = Field(default=10_000)

    # Bot Configuration
    log_level: str = Field(default="INFO")
    dry_run: bool = Field(default=False)
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def unfulfilled_only(self) -> bool:
        """Whether the fulfillment-state predicate applies."""
        return self.report_variant == "unfulfilled"

    @property
    def sender_address(self) -> Optional[str]:
        """From address, defaulting to the SMTP login as Gmail expects."""
        return self.email_from_address or self.smtp_username

    def validate_required(self) -> None:
        """Raise ``ValueError`` listing every missing required variable.

        Email settings are only required when a report will actually be sent.
        """
        required = {
            "SHOP": self.shop,
            "ACCESS_TOKEN": self.access_token,
        }
        if not self.dry_run:
            required.update(
                {
                    "EMAIL_USER": self.smtp_username,
                    "EMAIL_PASS": self.smtp_password,
                    "RECEIVER_EMAILS": self.email_to,
                }
            )

        missing = [key for key, value in required.items() if not value]
        if missing:
            raise ValueError(
                "Missing required env vars: " + ", ".join(missing)
            )

    def get_city_filters(self) -> List[str]:
        """Return parsed list of configured city names."""
        return _split_csv(self.city_filters)

    def get_email_recipients(self) -> List[str]:
        """Return parsed recipient list for email notifications."""
        return _split_csv(self.email_to)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# Global settings instance
settings = Settings()
