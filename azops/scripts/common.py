"""Shared argument parsing and bootstrap for the VM power scripts."""

import argparse
import sys
import time
from typing import Callable

import structlog

from azops import __version__
from azops.core.config import LOG_LEVELS, MAX_ATTEMPTS_LIMIT, Settings, settings as default_settings
from azops.core.error_tracking import init_error_tracking
from azops.core.exceptions import AzOpsError, ConfigurationError
from azops.core.logging import configure_logging
from azops.providers.azure import AzureComputeProvider
from azops.schemas.credentials import AzureCredentials
from azops.schemas.vm import PowerAction, RunSummary
from azops.services.credentials import build_credential
from azops.services.vm_runner import ProviderFactory, resolve_targets, run_power_action

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VM_FAILURES = 2
EXIT_INTERRUPTED = 130


def build_parser(action: PowerAction, description: str) -> argparse.ArgumentParser:
    """
    Build the argument parser shared by the start and stop scripts.

    Args:
        action: Power action the script performs
        description: Help text for the script

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(prog=f"azops-{action.value}-vm", description=description)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    target = parser.add_argument_group("target")
    target.add_argument("-g", "--resource-group", required=True, help="Resource group of the VMs")
    target.add_argument(
        "-n",
        "--vm-name",
        dest="vm_names",
        action="append",
        default=[],
        help=f"VM to {action.value}; repeat for several. Omit to target every VM in the resource group.",
    )

    auth = parser.add_argument_group("authentication")
    auth.add_argument("--subscription-id", help="Azure subscription (default: AZURE_SUBSCRIPTION_ID)")
    auth.add_argument("--tenant-id", help="Azure AD tenant (default: AZURE_TENANT_ID)")
    auth.add_argument(
        "--application-id",
        help="Service Principal application id (default: AZURE_CLIENT_ID)",
    )
    auth.add_argument(
        "--certificate-path",
        help="Service Principal certificate, PEM or PKCS12 (default: AZURE_CLIENT_CERTIFICATE_PATH)",
    )

    polling = parser.add_argument_group("polling")
    polling.add_argument(
        "--max-attempts",
        type=int,
        help=f"Attempts per VM, 1 to {MAX_ATTEMPTS_LIMIT} (default: VM_MAX_ATTEMPTS)",
    )
    polling.add_argument(
        "--retry-delay",
        type=float,
        help="Seconds between attempts (default: VM_RETRY_DELAY_SECONDS)",
    )
    polling.add_argument("--max-workers", type=int, help="VMs processed concurrently")

    output = parser.add_argument_group("output")
    output.add_argument("--output", choices=("text", "json"), default="text", help="Summary format")
    output.add_argument("--strict", action="store_true", help="Exit with status 2 if any VM failed")
    output.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (default: LOG_LEVEL)",
    )
    output.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines")

    return parser


def credentials_from_args(args: argparse.Namespace, settings: Settings) -> AzureCredentials:
    """
    Merge CLI arguments over settings into AzureCredentials.

    Raises:
        ConfigurationError: If no subscription id is available
    """
    subscription_id = args.subscription_id or settings.AZURE_SUBSCRIPTION_ID
    if not subscription_id:
        raise ConfigurationError(
            "No subscription given. Pass --subscription-id or set AZURE_SUBSCRIPTION_ID."
        )

    return AzureCredentials(
        subscription_id=subscription_id,
        tenant_id=args.tenant_id or settings.AZURE_TENANT_ID or None,
        client_id=args.application_id or settings.AZURE_CLIENT_ID or None,
        client_secret=settings.AZURE_CLIENT_SECRET or None,
        certificate_path=args.certificate_path or settings.AZURE_CLIENT_CERTIFICATE_PATH or None,
    )


def azure_provider_factory(credentials: AzureCredentials) -> ProviderFactory:
    """Return a factory that authenticates afresh for every call."""

    def factory() -> AzureComputeProvider:
        return AzureComputeProvider(build_credential(credentials), credentials.subscription_id)

    return factory


def format_summary(summary: RunSummary) -> str:
    """Render a run summary as console text, one line per VM plus totals."""
    lines = []
    for result in summary.results:
        status = "[OK]" if result.succeeded else "[FAILED]"
        lines.append(
            f"{status:<9} {result.vm}  state={result.final_state or 'unknown'}  "
            f"attempts={result.attempts}  {result.message}"
        )
    lines.append(
        f"{summary.action.value}: {len(summary.succeeded)} succeeded, {len(summary.failed)} failed"
    )
    return "\n".join(lines)


def run(
    action: PowerAction,
    argv: list[str] | None,
    description: str,
    default_workers: Callable[[Settings], int],
    settings: Settings | None = None,
    provider_factory: ProviderFactory | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Run a VM power script end to end.

    Args:
        action: START or STOP
        argv: Command-line arguments (None = sys.argv[1:])
        description: Parser description
        default_workers: Picks the fan-out width from settings
        settings: Settings override (tests)
        provider_factory: Provider factory override (tests)
        sleep: Sleep function passed to the pollers

    Returns:
        Process exit code
    """
    parser = build_parser(action, description)
    args = parser.parse_args(argv)
    if settings is None:
        settings = default_settings

    json_logs = settings.LOG_JSON if args.json_logs is None else args.json_logs
    max_attempts = args.max_attempts if args.max_attempts is not None else settings.VM_MAX_ATTEMPTS
    retry_delay = args.retry_delay if args.retry_delay is not None else settings.VM_RETRY_DELAY_SECONDS
    max_workers = args.max_workers if args.max_workers is not None else default_workers(settings)

    try:
        configure_logging(args.log_level or settings.LOG_LEVEL, json_logs=json_logs)
        init_error_tracking(settings)

        if not 1 <= max_attempts <= MAX_ATTEMPTS_LIMIT:
            raise ConfigurationError(
                f"--max-attempts must be between 1 and {MAX_ATTEMPTS_LIMIT}, got {max_attempts}"
            )
        if retry_delay < 0:
            raise ConfigurationError(f"--retry-delay cannot be negative, got {retry_delay}")
        if max_workers < 1:
            raise ConfigurationError(f"--max-workers must be at least 1, got {max_workers}")

        if provider_factory is None:
            provider_factory = azure_provider_factory(credentials_from_args(args, settings))

        vms = resolve_targets(provider_factory, args.resource_group, args.vm_names)
        summary = run_power_action(
            vms,
            action,
            provider_factory,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            max_workers=max_workers,
            sleep=sleep,
        )
    except AzOpsError as e:
        logger.error("script.failed", action=action.value, error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.warning("script.interrupted", action=action.value)
        return EXIT_INTERRUPTED

    if args.output == "json":
        print(summary.model_dump_json(indent=2))
    else:
        print(format_summary(summary))

    if args.strict and not summary.all_succeeded:
        return EXIT_VM_FAILURES
    return EXIT_OK
