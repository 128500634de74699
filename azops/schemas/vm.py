"""Virtual machine power-operation schemas."""

from enum import Enum

from pydantic import BaseModel, Field

# Display statuses reported by the instance view (PowerState/* codes)
POWER_STATE_RUNNING = "VM running"
POWER_STATE_DEALLOCATED = "VM deallocated"


class PowerAction(str, Enum):
    """Power operation applied to a virtual machine."""

    START = "start"
    STOP = "stop"

    @property
    def target_state(self) -> str:
        """Power state the VM must report for the action to be complete."""
        if self is PowerAction.START:
            return POWER_STATE_RUNNING
        return POWER_STATE_DEALLOCATED

    @property
    def past_tense(self) -> str:
        if self is PowerAction.START:
            return "started"
        return "stopped"


class VMReference(BaseModel):
    """A virtual machine addressed by resource group and name."""

    name: str = Field(..., min_length=1)
    resource_group: str = Field(..., min_length=1)
    power_state: str | None = None

    def __str__(self) -> str:
        return f"{self.resource_group}/{self.name}"


class VMOperationResult(BaseModel):
    """Outcome of driving one VM towards the target power state."""

    vm: VMReference
    action: PowerAction
    succeeded: bool
    attempts: int = Field(..., ge=0, description="State-changing calls issued")
    final_state: str | None = None
    message: str


class RunSummary(BaseModel):
    """All per-VM outcomes of one script run."""

    action: PowerAction
    results: list[VMOperationResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[VMOperationResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[VMOperationResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
