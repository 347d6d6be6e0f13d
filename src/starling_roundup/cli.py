import argparse
import logging

from . import __version__
from .config import Settings, load_settings
from .logging_setup import setup_logging


def mask(value: str | None, show: int = 4) -> str:
    if not value:
        return "None"
    if len(value) <= show:
        return "*" * len(value)
    return value[:show] + "*" * (len(value) - show)


def build_client(settings: Settings):
    from .starling import StarlingClient

    return StarlingClient(
        token=settings.starling_api_token,
        base_url=settings.starling_api_url,
        timeout_s=settings.http_timeout_s,
    )


def build_retry(settings: Settings):
    from .core.retry import RetryPolicy

    return RetryPolicy(
        max_retries=settings.retry_max_retries,
        base_delay_s=settings.retry_base_delay_s,
    )


def build_orchestrator(settings: Settings, client):
    from .core.orchestrator import RoundUpOrchestrator

    return RoundUpOrchestrator(
        accounts=client,
        goals=client,
        transactions=client,
        retry=build_retry(settings),
        lookback_days=settings.roundup_lookback_days,
    )


def print_error(error) -> None:
    print("error_code =", error.kind.value)
    print("error_message =", error.message)
    print("http_status =", error.http_status)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="starling-roundup")
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument(
        "command",
        nargs="?",
        default="health",
        choices=["health", "status-env", "accounts", "roundup"],
        help="Command to run",
    )

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    settings = load_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger("starling_roundup.cli")

    if args.command == "health":
        logger.info("Application started successfully.")
        print("ok")
        return 0

    if args.command == "status-env":
        print("STARLING_API_URL =", settings.starling_api_url)
        print("STARLING_API_TOKEN =", mask(settings.starling_api_token))
        print("HTTP_TIMEOUT_S =", settings.http_timeout_s)
        print("RETRY_MAX_RETRIES =", settings.retry_max_retries)
        print("RETRY_BASE_DELAY_S =", settings.retry_base_delay_s)
        print("ROUNDUP_LOOKBACK_DAYS =", settings.roundup_lookback_days)
        print("LOG_LEVEL =", settings.log_level)
        return 0

    if args.command == "accounts":
        from .core.errors import DomainError

        client = build_client(settings)
        try:
            accounts = build_retry(settings).with_retry(client.list_accounts, "get accounts") or []
        except DomainError as e:
            print_error(e)
            return 1
        finally:
            client.close()

        print("accounts_count =", len(accounts))
        for acc in accounts:
            print(
                "account:",
                acc.account_id,
                "type=",
                acc.type,
                "currency=",
                acc.currency,
                "defaultCategory=",
                acc.default_category_id,
            )
        return 0

    if args.command == "roundup":
        client = build_client(settings)
        try:
            outcome = build_orchestrator(settings, client).run()
        finally:
            client.close()

        print("state =", outcome.state.value)
        print("trace =", " -> ".join(s.value for s in outcome.trace))
        print("amount_minor_units =", outcome.amount_minor_units)
        if outcome.transfer_id:
            print("transfer_id =", outcome.transfer_id)
        if outcome.error is not None:
            print_error(outcome.error)
            return 1
        return 0

    return 1
