# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @property
    def message(self) -> str:
        return str(self.detail)


class QueryValidationError(AppError):
    """Client input rejected before any collaborator call."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UpstreamError(AppError):
    """An embedding or store collaborator failed; the whole request is aborted."""

    def __init__(
        self, message: str = ErrorMessage.UPSTREAM_ERROR.value.message
    ) -> None:
        super().__init__(message, ErrorMessage.UPSTREAM_ERROR.value.http_status)


class NoExtractableContentError(AppError):
    def __init__(
        self, message: str = ErrorMessage.NO_CONTENT.value.message
    ) -> None:
        super().__init__(message, ErrorMessage.NO_CONTENT.value.http_status)


class DataConsistencyWarning(UserWarning):
    # Issued via warnings.warn; logging.captureWarnings routes it to the log.
    pass
