"""Scheduler, handler table and runtimes.

Handler → Action → Scheduler step → lifecycle Event → Runtime
"""

from sagaflow.runtime.actions import Action, Fail, Resume, ResumeError, Suspend
from sagaflow.runtime.asyncio_runtime import AsyncioRuntime
from sagaflow.runtime.base import BaseRuntime
from sagaflow.runtime.clock import AsyncioClock, Clock, SimClock, TimeQueue
from sagaflow.runtime.events import (
    EffectDispatched,
    TaskCancelled,
    TaskCompleted,
    TaskCreated,
    TaskEvent,
    TaskFailed,
)
from sagaflow.runtime.handlers import (
    Handler,
    HandlerContext,
    HandlerTable,
    default_handlers,
    lookup_handler,
)
from sagaflow.runtime.scheduler import Continuation, Scheduler
from sagaflow.runtime.simulation import SimulationRuntime
from sagaflow.runtime.task import TaskRecord

__all__ = [
    "Action",
    "AsyncioClock",
    "AsyncioRuntime",
    "BaseRuntime",
    "Clock",
    "Continuation",
    "EffectDispatched",
    "Fail",
    "Handler",
    "HandlerContext",
    "HandlerTable",
    "Resume",
    "ResumeError",
    "Scheduler",
    "SimClock",
    "SimulationRuntime",
    "Suspend",
    "TaskCancelled",
    "TaskCompleted",
    "TaskCreated",
    "TaskEvent",
    "TaskFailed",
    "TaskRecord",
    "TimeQueue",
    "default_handlers",
    "lookup_handler",
]
