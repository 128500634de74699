#!/usr/bin/env python3
"""
Start Azure virtual machines and wait until they report "VM running".

Every VM is handled by its own job (started in parallel by default). Each job
retries the start call up to VM_MAX_ATTEMPTS times, sleeping
VM_RETRY_DELAY_SECONDS between attempts.

Usage:
    azops-start-vm -g <resource-group> [-n <vm> ...] [--subscription-id <id>]
"""

import sys

from azops.core.config import Settings
from azops.schemas.vm import PowerAction
from azops.scripts.common import run

DESCRIPTION = "Start Azure VMs in a resource group and poll until they are running."


def default_workers(settings: Settings) -> int:
    return settings.VM_START_MAX_WORKERS


def main(argv: list[str] | None = None, **overrides) -> int:
    return run(PowerAction.START, argv, DESCRIPTION, default_workers, **overrides)


if __name__ == "__main__":
    sys.exit(main())
