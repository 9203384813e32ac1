"""``JsonOutResult`` envelopes shared by routers and exception handlers."""
from typing import Any, Dict, Optional

from fastapi import HTTPException

from shared.utils.app_status_code import AppStatusCode
from shared.core.schemas import JsonOutResult

SUCCESS = "Success"
FAILURE = "Failure"


def success_response(data: Any, message: str = SUCCESS, status_code: str = AppStatusCode.DATA_RETRIEVED_SUCCESSFULLY):
    return JsonOutResult(
        data=data,
        status=SUCCESS,
        status_code=status_code,
        message=message
    )


def failure_body(message: str, status_code: str = AppStatusCode.OPERATION_FAILED) -> dict:
    return JsonOutResult(
        data=None,
        status=FAILURE,
        status_code=status_code,
        message=message
    ).model_dump()


def error_response(message: str, status_code: str = AppStatusCode.OPERATION_FAILED, http_status: int = 400,
                   headers: Optional[Dict[str, str]] = None):
    raise HTTPException(
        status_code=http_status,
        detail=failure_body(message, status_code),
        headers=headers
    )
