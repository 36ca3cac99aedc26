"""
Standard exit codes and error taxonomy for gitversioning.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_A_REPOSITORY = 64    # Execution root is not inside a git work tree
CONFIG_ERROR = 66        # Configuration file or command option error
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Descriptor/document divergence, bad placeholder
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'ParseError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    exit_code = getattr(exc, 'exit_code', None)
    if isinstance(exit_code, int):
        return exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


def exit_with_code(code: int, message: Optional[str] = None):
    """
    Exit with a specific code and optional message.

    Args:
        code: Exit code
        message: Optional message to print to stderr
    """
    import sys
    if message:
        print(message, file=sys.stderr)
    sys.exit(code)


class CommandError(Exception):
    """
    Exception that carries the exit code the command should end with.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised for malformed configuration: unknown ref type, bad pattern, bad override ref."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class GitError(CommandError):
    """Raised when a git query fails."""
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message, exit_code)


class NotARepositoryError(GitError):
    """Raised when the execution root is not inside a git work tree."""
    def __init__(self, path):
        super().__init__(
            f"execution root directory is not a git repository "
            f"(or any of the parent directories): {path}",
            NOT_A_REPOSITORY,
        )
        self.path = path


class StructuralDivergenceError(CommandError):
    """
    Raised when the raw document and the object model disagree on
    entry identity or order. Never recovered from: writing on would
    patch the wrong elements.
    """
    def __init__(self, message: str):
        super().__init__(message, DATA_ERROR)


class UnresolvedPlaceholderError(CommandError):
    """Raised when a format string references an undefined placeholder key."""
    def __init__(self, key: str, text: str):
        super().__init__(f"unknown placeholder ${{{key}}} in format {text!r}", DATA_ERROR)
        self.key = key
        self.text = text
