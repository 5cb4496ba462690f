from cloudsnap.pipeline.runner import Runner
from cloudsnap.pipeline.state import BuildState
from cloudsnap.pipeline.step import Step, StepAction

__all__ = ["BuildState", "Runner", "Step", "StepAction"]
