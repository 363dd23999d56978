"""
Custom exception classes and FastAPI exception handlers.

The service layer raises these domain errors without importing HTTP
concepts; the handlers registered here translate them into HTTP responses
with a consistent body: {"detail": "...", "error_type": "..."}.

Exception hierarchy:
    UserAPIError (base)
    ├── ValidationError          — data or query does not match its schema
    ├── UserNotFoundError        — no user matches the id and query
    ├── DuplicateUsernameError   — username already taken
    ├── NotAuthenticatedError    — bad credentials or bad token
    └── UnsupportedStrategyError — unknown authentication/hash strategy
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class UserAPIError(Exception):
    """Base exception for all User API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(UserAPIError):
    """
    Raised when incoming data or a query fails schema validation.

    Attributes:
        schema: Name of the schema that rejected the value (e.g. "UserData").
        errors: One {"field": ..., "message": ...} entry per offending field.
    """

    def __init__(self, schema: str, errors: list[dict]):
        self.schema = schema
        self.errors = errors
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(f"Invalid {schema}: {fields}")

    @property
    def fields(self) -> list[str]:
        return [error["field"] for error in self.errors]


class UserNotFoundError(UserAPIError):
    """Raised when no user matches the requested id (and query)."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"No record found for id '{user_id}'")


class DuplicateUsernameError(UserAPIError):
    """Raised when creating or renaming a user to a username already in use."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} is already taken")


class NotAuthenticatedError(UserAPIError):
    """Raised when login credentials or an access token are rejected."""

    def __init__(self, detail: str = "Invalid login"):
        super().__init__(detail)


class UnsupportedStrategyError(UserAPIError):
    """Raised when an authentication or hashing strategy is not registered."""

    def __init__(self, strategy: str):
        self.strategy = strategy
        super().__init__(f"Invalid authentication strategy '{strategy}'")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once during app creation in main.py.
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": "validation_error",
                "errors": exc.errors,
            },
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "not_found"},
        )

    @app.exception_handler(DuplicateUsernameError)
    async def duplicate_username_handler(
        request: Request, exc: DuplicateUsernameError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_username"},
        )

    @app.exception_handler(NotAuthenticatedError)
    async def not_authenticated_handler(
        request: Request, exc: NotAuthenticatedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "not_authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(UnsupportedStrategyError)
    async def unsupported_strategy_handler(
        request: Request, exc: UnsupportedStrategyError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": exc.detail, "error_type": "unsupported_strategy"},
        )
