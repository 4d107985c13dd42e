from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_service.config import get_settings
from user_service.errors import EmptyUpdate, StoreFault
from user_service.logging import get_logger
from user_service.materialize import collect_users, first_user
from user_service.models import NewUser, User, UserUpdate
from user_service.state import AppState
from user_service.store import Row, connect

log = get_logger(__name__)

router = APIRouter()


def get_state(request: Request) -> AppState:
    return request.app.state.users


def _store_error(exc: StoreFault) -> HTTPException:
    log.error("Store fault", extra={"operation": exc.operation, "error": str(exc)})
    return HTTPException(status_code=500, detail=str(exc))


def _applied(rows: Sequence[Row]) -> bool:
    # Conditional (IF EXISTS) writes answer with an [applied] column first.
    # No row at all means the store gave no signal; count that as applied.
    return not rows or bool(rows[0][0])


@router.get("/users", response_model=List[User])
async def get_all_users(state: AppState = Depends(get_state)):
    try:
        users = await collect_users(state.store.stream(state.queries.list_all(), "list users"))
    except StoreFault as exc:
        raise _store_error(exc) from exc
    log.debug("Listed users", extra={"rows": len(users)})
    return users


@router.post("/register", status_code=201)
async def register_user(new_user: NewUser, state: AppState = Depends(get_state)) -> str:
    user_id = uuid4()
    statement = state.queries.insert(user_id, new_user.name, new_user.email)
    try:
        await state.store.execute(statement, "create user")
    except StoreFault as exc:
        raise _store_error(exc) from exc
    log.info("User created", extra={"user_id": str(user_id)})
    return f"User {user_id} created successfully"


@router.get("/users/{user_id}", response_model=User)
async def get_user_by_id(user_id: UUID, state: AppState = Depends(get_state)):
    try:
        user = await first_user(state.store.stream(state.queries.get_by_id(user_id), "get user"))
    except StoreFault as exc:
        raise _store_error(exc) from exc
    if user is None:
        log.info("User not found", extra={"user_id": str(user_id)})
        raise HTTPException(status_code=404, detail=f"User with ID {user_id} not found")
    return user


@router.patch("/update/{user_id}")
async def update_user(
    user_id: UUID, update: UserUpdate, state: AppState = Depends(get_state)
) -> str:
    try:
        statement = state.queries.partial_update(user_id, update.present_fields())
    except EmptyUpdate:
        return f"No fields to update for user with ID {user_id}"

    try:
        rows = await state.store.execute(statement, "update user")
    except StoreFault as exc:
        raise _store_error(exc) from exc
    if not _applied(rows):
        log.info("User not found", extra={"user_id": str(user_id)})
        raise HTTPException(status_code=404, detail=f"User with ID {user_id} not found")
    log.info("User updated", extra={"user_id": str(user_id)})
    return f"User with ID {user_id} updated successfully"


@router.delete("/delete/{user_id}")
async def delete_user(user_id: UUID, state: AppState = Depends(get_state)) -> str:
    try:
        rows = await state.store.execute(state.queries.delete_by_id(user_id), "delete user")
    except StoreFault as exc:
        raise _store_error(exc) from exc
    if not _applied(rows):
        log.info("User not found", extra={"user_id": str(user_id)})
        raise HTTPException(status_code=404, detail=f"User with ID {user_id} not found")
    log.info("User deleted", extra={"user_id": str(user_id)})
    return f"User with ID {user_id} deleted successfully"


async def _plain_detail(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Error bodies are a bare JSON string, not {"detail": ...}.
    return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=exc.headers)


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    # e.g. "Invalid request: body.email: Field required"
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=422, content=f"Invalid request: {problems}")


@asynccontextmanager
async def _connect_store(app: FastAPI):
    settings = get_settings()
    cluster, session = await asyncio.to_thread(connect, settings)
    app.state.users = AppState.from_session(session, settings)
    try:
        yield
    finally:
        await asyncio.to_thread(cluster.shutdown)


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """
    Build the API. With ``state`` given the app uses it as is; otherwise it
    connects to the configured cluster on startup and disconnects on shutdown.
    """
    if state is None:
        app = FastAPI(lifespan=_connect_store)
    else:
        app = FastAPI()
        app.state.users = state
    app.add_exception_handler(StarletteHTTPException, _plain_detail)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.include_router(router)
    return app


app = create_app()
