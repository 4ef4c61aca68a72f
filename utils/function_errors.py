"""
Error responses for the HTTP functions under /functions.

Functions answer with a single ``{"error": message}`` object instead of
FastAPI's ``{"detail": ...}``, and always carry the permissive CORS headers
so browser callers can read the failure.
"""
from fastapi import Request
from fastapi.responses import JSONResponse

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class FunctionError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def function_response(payload: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=CORS_HEADERS)


async def function_error_handler(request: Request, exc: FunctionError) -> JSONResponse:
    return function_response({"error": exc.message}, status_code=exc.status_code)
