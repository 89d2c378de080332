import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.inventory.errors import (
    ConflictError,
    InsufficientStockError,
    InventoryError,
    NotFoundError,
    StorageError,
    ValidationError,
)


logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _status_for(exc: InventoryError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError):
        status_code = _status_for(exc)
        detail = {"code": exc.code, "message": exc.message}
        if isinstance(exc, InsufficientStockError):
            detail.update(
                batch_id=exc.batch_id,
                available=str(exc.available),
                requested=str(exc.requested),
            )
        if status_code >= 500:
            logger.error("Inventory request failed: %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": detail})
