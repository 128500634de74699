#!/usr/bin/env python3
"""
Stop (deallocate) Azure virtual machines and wait until they report "VM deallocated".

VMs are processed one after another unless --max-workers or
VM_STOP_MAX_WORKERS says otherwise.

Usage:
    azops-stop-vm -g <resource-group> [-n <vm> ...] [--subscription-id <id>]
"""

import sys

from azops.core.config import Settings
from azops.schemas.vm import PowerAction
from azops.scripts.common import run

DESCRIPTION = "Stop and deallocate Azure VMs in a resource group and poll until they are deallocated."


def default_workers(settings: Settings) -> int:
    return settings.VM_STOP_MAX_WORKERS


def main(argv: list[str] | None = None, **overrides) -> int:
    return run(PowerAction.STOP, argv, DESCRIPTION, default_workers, **overrides)


if __name__ == "__main__":
    sys.exit(main())
