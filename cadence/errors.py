"""Exception hierarchy shared by the recurrence engine, planner and stores."""


class CadenceError(Exception):
    """Base class for all Cadence errors."""


class InvalidRuleError(CadenceError, ValueError):
    """A recurrence rule is malformed or incomplete.

    Raised before any task state is touched; the triggering mutation must be
    rejected.
    """


class PlanningError(CadenceError):
    """Re-deriving a task's pending notifications failed.

    The task mutation that triggered planning is kept; reminders are stale
    until the next successful planning run.
    """


class StoreError(CadenceError):
    """A persistence operation failed."""


class TaskNotFoundError(CadenceError, LookupError):
    """No task exists with the requested id."""


class TaskStateError(CadenceError):
    """The task is not in a state that allows the requested operation."""
