from cloudsnap.steps.cleanup_keys import StepCleanupTempKeys
from cloudsnap.steps.connect import StepConnect
from cloudsnap.steps.create_server import StepCreateServer
from cloudsnap.steps.provision import StepProvision
from cloudsnap.steps.snapshot import StepTakeSnapshot
from cloudsnap.steps.ssh_key import StepCreateSSHKey
from cloudsnap.steps.teardown import StepDestroyDatacenter

__all__ = [
    "StepCleanupTempKeys",
    "StepConnect",
    "StepCreateSSHKey",
    "StepCreateServer",
    "StepDestroyDatacenter",
    "StepProvision",
    "StepTakeSnapshot",
]
