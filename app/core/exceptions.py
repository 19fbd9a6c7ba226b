from fastapi import HTTPException, status


class ReferralStoreError(Exception):
    """Raised when the referral data store fails (query, network or config)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(HTTPException):
    """Raised when request validation fails."""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
        )


class StoreUnavailableError(HTTPException):
    """Raised when a lookup cannot be served because the data store failed."""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
        )
