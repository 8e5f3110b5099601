from fastapi.responses import JSONResponse


def error_response(message: str, status_code: int, code: str = "SessionKeeper.GeneralError") -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "status": status_code,
                "message": message,
            }
        },
    )
