"""
Response envelope and auth cookie helpers.

Success: {statusCode, data, message, success: true}
Error:   {statusCode, message, success: false, errors: []}
"""
from typing import Any, List, Optional

from fastapi import Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from echoprep.core import config

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def api_response(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": jsonable_encoder(data if data is not None else {}),
            "message": message,
            "success": status_code < 400,
        },
    )


def api_error(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "message": message,
            "success": False,
            "errors": jsonable_encoder(errors or []),
        },
    )


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": config.ENVIRONMENT == "production",
        "samesite": "lax",
        "path": "/",
    }


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    options = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, access_token, max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60, **options)
    response.set_cookie(REFRESH_COOKIE, refresh_token, max_age=config.REFRESH_TOKEN_EXPIRE_DAYS * 86400, **options)


def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
