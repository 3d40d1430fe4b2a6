"""
Permission core exceptions.

The permission store and scope resolver never let these reach rendering
code: a failed check is a denial, not an error.
"""


class PermissionCoreError(Exception):
    """Base exception for permission resolution errors."""

    pass


class AuthExpiredError(PermissionCoreError):
    """Raised when the upstream token is rejected during a permission check."""

    pass


class PermissionNetworkError(PermissionCoreError):
    """Raised on HTTP errors, timeouts and malformed upstream responses."""

    pass


class UnknownPermissionError(PermissionCoreError):
    """Raised when a permission name is not present in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown permission: {name}")
        self.name = name


class ConfigMismatchError(PermissionCoreError):
    """Raised when declared permission strings do not match the catalog."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems) or "Permission configuration mismatch")
        self.problems = problems
