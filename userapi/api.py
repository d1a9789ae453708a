"""HTTP API exposing CRUD endpoints for users."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from http import HTTPStatus
from typing import Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .context import RequestContext
from .errors import (
    AlreadyExistsError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    OperationCancelledError,
)
from .models import CreateUserRequest, UpdateUserRequest, UserResponse
from .repository import InMemoryUserRepository, UserRepository
from .service import UserService

logger = logging.getLogger("userapi.api")

API_PREFIX = "/api/v1"

_MAX_USER_ID = 2**32 - 1


class CreateUserPayload(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)


class UpdateUserPayload(BaseModel):
    """Fields left empty or null keep their stored value."""

    username: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)


class UserView(BaseModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    created_at: datetime
    updated_at: datetime


class ErrorBody(BaseModel):
    error: str
    message: str = ""


def _user_to_view(user: UserResponse) -> UserView:
    return UserView(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def parse_user_id(raw: str) -> int:
    """Convert a path segment to a user id, rejecting anything malformed."""

    if not raw.isascii() or not raw.isdigit():
        raise InvalidArgumentError("Invalid user ID")
    value = int(raw)
    if value > _MAX_USER_ID:
        raise InvalidArgumentError("Invalid user ID")
    return value


def _request_context() -> Iterator[RequestContext]:
    ctx = RequestContext()
    try:
        yield ctx
    finally:
        # The request is finished; anything still holding the context stops.
        ctx.cancel()


def _error_response(
    status_code: int,
    message: str,
    headers: Dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorBody(error=HTTPStatus(status_code).phrase, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def register_user_routes(router: APIRouter, service: UserService) -> None:
    """Attach the health check and user endpoints to ``router``."""

    @router.get("/health", response_class=PlainTextResponse)
    def healthcheck() -> str:
        return "API is healthy"

    @router.get("/users", response_model=List[UserView])
    def list_users(ctx: RequestContext = Depends(_request_context)) -> List[UserView]:
        return [_user_to_view(user) for user in service.list_users(ctx)]

    @router.get("/users/{user_id}", response_model=UserView)
    def get_user(user_id: str, ctx: RequestContext = Depends(_request_context)) -> UserView:
        try:
            user = service.get_user(ctx, parse_user_id(user_id))
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return _user_to_view(user)

    @router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserView)
    def create_user(
        payload: CreateUserPayload,
        ctx: RequestContext = Depends(_request_context),
    ) -> UserView:
        request = CreateUserRequest(
            username=payload.username,
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name or "",
            last_name=payload.last_name or "",
        )
        try:
            user = service.create_user(ctx, request)
        except (AlreadyExistsError, ConflictError, InvalidArgumentError) as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _user_to_view(user)

    @router.put("/users/{user_id}", response_model=UserView)
    def update_user(
        user_id: str,
        payload: UpdateUserPayload,
        ctx: RequestContext = Depends(_request_context),
    ) -> UserView:
        request = UpdateUserRequest(
            username=payload.username or "",
            email=payload.email or "",
            password=payload.password or "",
            first_name=payload.first_name or "",
            last_name=payload.last_name or "",
        )
        try:
            user = service.update_user(ctx, parse_user_id(user_id), request)
        except (AlreadyExistsError, ConflictError, InvalidArgumentError) as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return _user_to_view(user)

    @router.delete(
        "/users/{user_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    def delete_user(user_id: str, ctx: RequestContext = Depends(_request_context)) -> Response:
        try:
            service.delete_user(ctx, parse_user_id(user_id))
        except InvalidArgumentError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return Response(status_code=status.HTTP_204_NO_CONTENT)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request body: %s", exc.errors())
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    # The in-memory store never checks the context; backends doing I/O call
    # RequestContext.check() and surface here.
    @app.exception_handler(OperationCancelledError)
    async def cancelled_error(_request: Request, exc: OperationCancelledError) -> JSONResponse:
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


def _install_middleware(app: FastAPI) -> None:
    # Registered first so it runs inside the logging middleware and the
    # logged status reflects the 500 it produces.
    @app.middleware("http")
    async def recover_from_errors(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
            body = ErrorBody(error="Internal Server Error", message="An unexpected error occurred")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=body.model_dump(),
            )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        client = f"{request.client.host}:{request.client.port}" if request.client else "-"
        logger.info(
            "[%s] %s %s %d %.3fms",
            request.method,
            target,
            client,
            response.status_code,
            elapsed * 1000,
        )
        return response


def create_app(
    *,
    service: UserService | None = None,
    repository: UserRepository | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application serving the user API."""

    if service is None:
        if repository is None:
            repository = InMemoryUserRepository()
        service = UserService(repository)

    app = FastAPI(
        title="User API",
        version="1.0.0",
        description="REST API for managing users.",
        docs_url="/swagger",
        redoc_url=None,
    )
    app.state.service = service
    app.state.settings = settings if settings is not None else Settings()

    router = APIRouter(prefix=API_PREFIX)
    register_user_routes(router, service)
    app.include_router(router)

    _install_error_handlers(app)
    _install_middleware(app)

    return app


__all__ = ["API_PREFIX", "create_app", "parse_user_id", "register_user_routes"]
