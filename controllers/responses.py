from fastapi import HTTPException, status

from core.result import Err, ErrorKind

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.MISSING_PARAMS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_TOKEN: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CANCELLED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_RECORD: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
}


def error_response(error: Err, action: str) -> HTTPException:
    """Maps a failed operation to the HTTP error returned to the client."""
    status_code = STATUS_BY_KIND.get(error.kind, status.HTTP_502_BAD_GATEWAY)
    return HTTPException(
        status_code=status_code,
        detail={"success": False, "message": f"{action} failed: {error.message}", "error": error.kind.value},
    )
