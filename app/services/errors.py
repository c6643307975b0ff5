"""
Ledger error taxonomy.

Services raise these; the API maps each one to its HTTP status and a
stable `code`.
"""


class LedgerError(Exception):
    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__ or self.code)
        self.message = message or (self.__doc__ or self.code).strip()


class ValidationError(LedgerError):
    """Malformed input"""
    code = "validation_error"
    status_code = 422


class NotFoundError(LedgerError):
    """Resource not found"""
    code = "not_found"
    status_code = 404


class CourseNotFound(NotFoundError):
    """Course not found"""
    code = "course_not_found"


class ConflictError(LedgerError):
    """Conflicting ledger state"""
    code = "conflict"
    status_code = 409


class AlreadyPurchased(ConflictError):
    """Already purchased"""
    code = "already_purchased"


class DuplicateTransaction(ConflictError):
    """Transaction already recorded"""
    code = "duplicate_transaction"


class CodeAllocationError(ConflictError):
    """Could not allocate a unique referral code"""
    code = "referral_code_unavailable"


class CourseCreationForbidden(LedgerError):
    """Course creation not allowed"""
    code = "course_creation_forbidden"
    status_code = 403

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class ExternalUnavailable(Exception):
    """Chain oracle unreachable, misconfigured or returned garbage.

    Never escapes the oracle module's public functions.
    """
