from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from file_extraction.factory import build_url_issuer
from file_extraction.pipeline import UploadUrlIssuer
from file_extraction.schemas.uploads import UploadRequest

router = APIRouter(prefix="/uploads", tags=["uploads"])


def get_url_issuer() -> UploadUrlIssuer:
    try:
        return build_url_issuer()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.post("/presign")
def presign_upload(
    payload: UploadRequest,
    issuer: UploadUrlIssuer = Depends(get_url_issuer),
) -> JSONResponse:
    result = issuer.issue(payload)
    return JSONResponse(status_code=result.status_code, content=result.body())
