# --------------------------------------------------------------------------------
# Error types shared by the ledger, the tracker and the vendor configuration
# --------------------------------------------------------------------------------


class LedgerError(Exception):
    """Base error. status_code is what the HTTP layer answers with."""
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {"message": self.message}


class ValidationError(LedgerError):
    """Malformed input. errors maps field name -> message."""
    status_code = 400
    message = "Invalid data"

    def __init__(self, errors=None, message=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        return {"message": self.message, "errors": self.errors}


class DuplicateSubmission(LedgerError):
    status_code = 400
    message = "You can only rate once per day"


class NotFound(LedgerError):
    status_code = 404
    message = "Vendor not found"


class StorageError(LedgerError):
    status_code = 500
    message = "Database error"
