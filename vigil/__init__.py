"""
VIGIL - scheduled watcher execution.

Keeps a live set of recurring timers in step with stored watcher definitions
and runs each watcher's search, condition, transform and actions.
"""

__version__ = "0.1.0"
