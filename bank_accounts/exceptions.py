"""
Exception hierarchy for the bank accounts system.

Not-found and conflict errors are expected outcomes that the facade turns into
readable failure messages. StorageError wraps unexpected database failures.
"""


class BankError(Exception):
    """Base exception for all bank accounts errors."""


class NotFoundError(BankError):
    """Raised when a referenced entity does not exist."""


class AccountNotFoundError(NotFoundError):
    """Raised when no account has the given account number."""

    def __init__(self, account_number: int):
        super().__init__(f"Account #{account_number} not found.")
        self.account_number = account_number


class ClientNotFoundError(NotFoundError):
    """Raised when no client has the given ID."""

    def __init__(self, client_id: int):
        super().__init__(f"Client with ID {client_id} not found.")
        self.client_id = client_id


class AssociationNotFoundError(NotFoundError):
    """Raised when an account and a client were never linked."""

    def __init__(self, account_number: int, client_id: int):
        super().__init__(
            f"Client {client_id} is not associated with account #{account_number}."
        )
        self.account_number = account_number
        self.client_id = client_id


class ConflictError(BankError):
    """Raised when a write would violate a uniqueness rule."""


class DuplicateAccountNumberError(ConflictError):
    """Raised when an account number is already in use."""

    def __init__(self, account_number: int):
        super().__init__(f"Account number {account_number} already exists.")
        self.account_number = account_number


class DuplicateAssociationError(ConflictError):
    """Raised when an account-client pair is already linked."""

    def __init__(self, account_id: int, client_id: int):
        super().__init__(
            f"Client {client_id} is already associated with account ID {account_id}."
        )
        self.account_id = account_id
        self.client_id = client_id


class MalformedRecordError(BankError):
    """Raised when a stored account row cannot be turned into an account."""


class StorageError(BankError):
    """Raised when the database fails; the original error is chained."""
