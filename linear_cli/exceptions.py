# linear_cli/exceptions.py


class LinearCLIError(Exception):
    """Base exception for every handled CLI failure."""

    def __init__(self, message):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(LinearCLIError):
    """Exception raised for missing or invalid configuration."""

    pass


class NoConfigFile(ConfigurationError):
    """Exception raised when an alias mutation has no config file to write to."""

    def __init__(self, message="No config file found. Run 'linear login' first."):
        super().__init__(message)


class AliasNotFound(LinearCLIError):
    """Exception raised when removing an alias that does not exist."""

    def __init__(self, code):
        self.code = code
        super().__init__(f"Alias not found: {code}")


class LinearAPIError(LinearCLIError):
    """Exception raised for errors in the Linear API."""

    def __init__(self, message, errors=None):
        self.errors = errors
        super().__init__(message)


class EntityNotFound(LinearCLIError):
    """Exception raised when a name, identifier or alias matches nothing."""

    def __init__(self, kind, name):
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} not found: {name}")


class InsufficientTargets(LinearCLIError):
    """Exception raised when a full reorder lists fewer than two members."""

    def __init__(self, kind):
        super().__init__(f"At least 2 {kind.lower()}s required")


class MissingAnchor(LinearCLIError):
    """Exception raised when a move names neither --before nor --after."""

    def __init__(self):
        super().__init__("--before or --after required")


class ReorderFailed(LinearCLIError):
    """Exception raised when some sort-key updates of a batch failed.

    Updates that succeeded are not rolled back.
    """

    def __init__(self, applied, failed):
        self.applied = applied
        self.failed = failed
        details = "; ".join(f"{name} ({error})" for name, error in failed)
        super().__init__(
            f"Reorder partially applied: {len(applied)} of "
            f"{len(applied) + len(failed)} updates succeeded. Failed: {details}"
        )


class NoMatchingChecklistItem(LinearCLIError):
    """Exception raised when no checklist line matches the requested text."""

    def __init__(self, message, candidates=None):
        self.candidates = candidates or []
        super().__init__(message)


class GitError(LinearCLIError):
    """Exception raised when a git command fails."""

    pass


class GitHubError(LinearCLIError):
    """Exception raised when the gh CLI is missing or a gh command fails."""

    pass
