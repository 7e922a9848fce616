"""
Watcher Engine

Scheduling and execution of stored watchers.

Provides:
- Watcher definition models
- Recurrence resolution (phrases, crontab, fixed intervals)
- The execution pipeline (search, condition, transform, actions)
- The schedule reconciler and the timer table
"""

from vigil.engine.models import (
    WatcherDefinition,
    WatcherHit,
    FiringOutcome,
)
from vigil.engine.errors import (
    VigilError,
    StorageError,
    StorageNotFoundError,
    SearchError,
    RecurrenceError,
    ScriptEvaluationError,
)
from vigil.engine.recurrence import (
    Recurrence,
    resolve_recurrence,
    parse_text,
)
from vigil.engine.evaluator import (
    AttrDict,
    PythonScriptEvaluator,
    ScriptEvaluator,
)
from vigil.engine.actions import (
    ActionDispatcher,
    LogActionDispatcher,
    classify_actions,
)
from vigil.engine.protocols import (
    SearchClient,
    WatcherStore,
)
from vigil.engine.search import SearchMethodResolver
from vigil.engine.pipeline import ExecutionPipeline
from vigil.engine.timers import (
    ScheduleEntry,
    TimerHandle,
    TimerService,
    TimerTable,
)
from vigil.engine.reconciler import ScheduleReconciler
from vigil.engine.scheduler import (
    WatcherScheduler,
    get_scheduler,
    reset_scheduler,
)

__all__ = [
    # Models
    "WatcherDefinition",
    "WatcherHit",
    "FiringOutcome",
    # Errors
    "VigilError",
    "StorageError",
    "StorageNotFoundError",
    "SearchError",
    "RecurrenceError",
    "ScriptEvaluationError",
    # Recurrence
    "Recurrence",
    "resolve_recurrence",
    "parse_text",
    # Scripts
    "AttrDict",
    "PythonScriptEvaluator",
    "ScriptEvaluator",
    # Actions
    "ActionDispatcher",
    "LogActionDispatcher",
    "classify_actions",
    # Collaborators
    "SearchClient",
    "WatcherStore",
    "SearchMethodResolver",
    # Execution
    "ExecutionPipeline",
    # Scheduling
    "ScheduleEntry",
    "TimerHandle",
    "TimerService",
    "TimerTable",
    "ScheduleReconciler",
    "WatcherScheduler",
    "get_scheduler",
    "reset_scheduler",
]
