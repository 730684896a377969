from fastapi import HTTPException


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InsufficientCredits(HTTPException):
    def __init__(self, detail="No credits remaining"):
        super().__init__(status_code=402, detail=detail)


class InvalidRequest(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class UpstreamFailure(HTTPException):
    """
    A model or payment provider call failed. The client only ever sees the
    generic message; the cause is logged where it is raised.
    """

    def __init__(self, detail: str = "Upstream service failed"):
        super().__init__(status_code=500, detail=detail)


class WebhookSignatureInvalid(HTTPException):
    def __init__(self, detail: str = "Invalid signature"):
        super().__init__(status_code=400, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Not allowed"):
        super().__init__(status_code=403, detail=detail)
