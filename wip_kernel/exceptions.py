"""
Typed Exception Hierarchy for the WIP Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (API handlers, report jobs) map errors onto responses.  Matching
on message text is fragile, so every error here has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured attributes carrying the offending identifiers

Example:
    try:
        payload = service.get_task_wip(task_id)
    except TaskNotFoundError as e:
        return api_error(404, code=e.code, task=e.task_external_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    WipKernelError (base)
    |
    +-- ScopeNotFoundError
    |   +-- TaskNotFoundError
    |   +-- ClientNotFoundError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                  | When Raised
----------------|-----------------------|-----------------------------------------
Scope           | TASK_NOT_FOUND        | Task external id does not resolve
                | CLIENT_NOT_FOUND      | Client external id does not resolve
----------------|-----------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR   | Engine config file holds invalid values

===============================================================================
WHAT IS NOT HERE
===============================================================================

- Store outages.  SQLAlchemy errors raised by selectors propagate unchanged;
  retry policy belongs to the data-access layer.
- Truncated scans.  A scan that hits the row cap reports
  ``limit_reached=True`` on its TransactionWindow; it is advisory and
  never raised.
- Zero denominators.  Ratio metrics resolve to 0.

===============================================================================
"""


class WipKernelError(Exception):
    """
    Base exception for all WIP kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "WIP_KERNEL_ERROR"


# Scope resolution


class ScopeNotFoundError(WipKernelError):
    """Base exception for task/client scopes that do not resolve."""

    code: str = "SCOPE_NOT_FOUND"


class TaskNotFoundError(ScopeNotFoundError):
    """Task with given external id was not found."""

    code: str = "TASK_NOT_FOUND"

    def __init__(self, task_external_id: str):
        self.task_external_id = task_external_id
        super().__init__(f"Task not found: {task_external_id}")


class ClientNotFoundError(ScopeNotFoundError):
    """Client with given external id was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_external_id: str):
        self.client_external_id = client_external_id
        super().__init__(f"Client not found: {client_external_id}")


# Configuration


class ConfigurationError(WipKernelError):
    """Engine configuration holds an invalid value."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for {field}: {reason}")
