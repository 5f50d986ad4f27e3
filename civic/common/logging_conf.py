"""
Centralized logging configuration with Sentry.io integration.

Bearer tokens travel in the Authorization header, so Sentry events
are scrubbed of it before they leave the process.
"""

import logging
from typing import Any, Optional

import sentry_sdk

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "langfuse", "urllib3")

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


def scrub_event(
    event: dict[str, Any],
    hint: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """
    Sentry before_send hook removing credentials from request data.

    Args:
        event: Sentry event payload
        hint: Sentry hint (unused)

    Returns:
        dict: The same event with sensitive headers masked
    """
    headers = event.get("request", {}).get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in SENSITIVE_HEADERS:
                headers[name] = "[Filtered]"
    return event


def setup_logging(
    sentry_dsn: Optional[str] = None,
    sentry_environment: str = "development",
    sentry_traces_sample_rate: float = 0.1,
    sentry_profiles_sample_rate: float = 1.0,
    log_level: str = "INFO",
    service_name: str = "civic",
    integrations: Optional[list[Any]] = None
) -> None:
    """
    Configure application logging and Sentry integration.

    Args:
        sentry_dsn: Sentry DSN URL (if None, Sentry is disabled)
        sentry_environment: Environment name for Sentry
        sentry_traces_sample_rate: Sampling rate for traces (0.0-1.0)
        sentry_profiles_sample_rate: Sampling rate for profiles (0.0-1.0)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service for logging context
        integrations: Extra Sentry integrations for this service
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format=(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "%(message)s"
        ),
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if sentry_dsn:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=sentry_environment,
            traces_sample_rate=sentry_traces_sample_rate,
            profiles_sample_rate=sentry_profiles_sample_rate,
            integrations=integrations or [],
            attach_stacktrace=True,
            send_default_pii=False,
            before_send=scrub_event,
        )
        logging.info(
            f"Sentry initialized for {service_name} in "
            f"{sentry_environment} environment"
        )
    else:
        logging.info(
            f"Sentry disabled for {service_name} "
            f"(no DSN provided)"
        )


def setup_fastapi_logging(
    sentry_dsn: Optional[str] = None,
    sentry_environment: str = "development",
    sentry_traces_sample_rate: float = 0.1,
    sentry_profiles_sample_rate: float = 1.0,
    log_level: str = "INFO"
) -> None:
    """
    Configure logging for the API service with Sentry's FastAPI and
    Starlette integrations.
    """
    integrations = []
    if sentry_dsn:
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.starlette import StarletteIntegration

        integrations = [
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ]

    setup_logging(
        sentry_dsn=sentry_dsn,
        sentry_environment=sentry_environment,
        sentry_traces_sample_rate=sentry_traces_sample_rate,
        sentry_profiles_sample_rate=sentry_profiles_sample_rate,
        log_level=log_level,
        service_name="civic-api",
        integrations=integrations
    )
