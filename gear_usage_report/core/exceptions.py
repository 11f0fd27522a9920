"""
Report errors.

Every failure the report can hit is a user-input failure; each carries the
exit code the CLI terminates with.
"""

EXIT_CODE_OK = 0
EXIT_CODE_INVALID_GEAR = 1
EXIT_CODE_INVALID_PLAN = 2
EXIT_CODE_USER_NOT_FOUND = 3
EXIT_CODE_USAGE = 255


class ReportError(Exception):
    """Base class for errors that terminate the report."""
    exit_code = EXIT_CODE_USAGE


class UsageError(ReportError):
    """Malformed command line input; the CLI shows usage and exits."""
    exit_code = EXIT_CODE_USAGE


class InvalidGearIdError(ReportError):
    """Raised when a gear identifier is not well formed."""
    exit_code = EXIT_CODE_INVALID_GEAR


class InvalidPlanError(ReportError):
    """Raised when a plan id is not in the billing catalog."""
    exit_code = EXIT_CODE_INVALID_PLAN


class UserNotFoundError(ReportError):
    """Raised when no account matches the requested login."""
    exit_code = EXIT_CODE_USER_NOT_FOUND

    def __init__(self, login: str, plan_id=None):
        if plan_id:
            message = f"User '{login}' not found under plan '{plan_id}'."
        else:
            message = f"User '{login}' not found."
        super().__init__(message)
        self.login = login
        self.plan_id = plan_id
