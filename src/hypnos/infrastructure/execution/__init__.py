from hypnos.infrastructure.execution.call_executor import (
    CallContext,
    InProcessCallExecutor,
    TargetRevert,
)
from hypnos.infrastructure.execution.demo_target import DemoTarget

__all__ = ["CallContext", "DemoTarget", "InProcessCallExecutor", "TargetRevert"]
