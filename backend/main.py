from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional
import logging
import uuid

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from auth import (
    generate_token,
    get_current_session,
    get_current_user,
    hash_password,
    verify_password,
)
from config import settings
from cors import PublicPathCORSMiddleware
from logging_setup import setup_logging
from models import (
    AcceptSuggestionRequest,
    Credentials,
    SessionInfo,
    Subtask,
    SubtaskCreate,
    SubtaskUpdate,
    Task,
    TaskCreate,
    TaskUpdate,
)
from database import (
    init_db,
    create_user_db,
    find_user_by_email_db,
    create_session_db,
    delete_session_db,
    get_tasks_db,
    create_task_db,
    update_task_db,
    delete_task_db,
    get_subtasks_db,
    create_subtask_db,
    update_subtask_db,
    delete_subtask_db,
)
from suggestions import SubtaskSuggestionService, SuggestionError, accept_suggestion

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    setup_logging(settings.log_level)
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(title="Subtasker", lifespan=lifespan)

SUGGESTION_PATH = "/generate-subtasks"

app.add_middleware(
    PublicPathCORSMiddleware,
    public_paths=(SUGGESTION_PATH,),
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
)


@lru_cache
def get_suggestion_service() -> SubtaskSuggestionService:
    return SubtaskSuggestionService(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        timeout=settings.llm_timeout_seconds,
    )


# Auth
def _start_session(user_id: str, email: str) -> SessionInfo:
    token = generate_token()
    create_session_db(token, user_id, settings.session_ttl_hours)
    return SessionInfo(token=token, user_id=user_id, email=email)


@app.post("/auth/signup", status_code=201)
def signup(credentials: Credentials) -> SessionInfo:
    password_hash, salt = hash_password(credentials.password)
    user = create_user_db(str(uuid.uuid4()), credentials.email, password_hash, salt)
    if not user:
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info("New user %s", user["id"])
    return _start_session(user["id"], user["email"])


@app.post("/auth/login")
def login(credentials: Credentials) -> SessionInfo:
    user = find_user_by_email_db(credentials.email)
    if not user or not verify_password(credentials.password, user["password_hash"], user["password_salt"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _start_session(user["id"], user["email"])


@app.get("/auth/session")
def get_session(session: dict = Depends(get_current_session)) -> dict:
    return {"user_id": session["user_id"], "email": session["email"]}


@app.post("/auth/logout")
def logout(session: dict = Depends(get_current_session)) -> dict:
    delete_session_db(session["token"])
    return {"status": "signed_out"}


# Tasks
@app.get("/tasks")
def get_tasks(user_id: str = Depends(get_current_user)) -> list[Task]:
    return get_tasks_db(user_id)


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate, user_id: str = Depends(get_current_user)) -> Task:
    return create_task_db(
        str(uuid.uuid4()),
        user_id,
        task_data.title,
        task_data.priority,
        task_data.status
    )


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate, user_id: str = Depends(get_current_user)) -> Task:
    result = update_task_db(
        task_id,
        user_id,
        priority=task_data.priority,
        status=task_data.status
    )
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str, user_id: str = Depends(get_current_user)) -> dict:
    if not delete_task_db(task_id, user_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


# Subtasks
@app.get("/subtasks")
def get_subtasks(task_id: Optional[str] = None, user_id: str = Depends(get_current_user)) -> list[Subtask]:
    return get_subtasks_db(user_id, task_id)


@app.post("/tasks/{task_id}/subtasks", status_code=201)
def create_subtask(task_id: str, subtask_data: SubtaskCreate, user_id: str = Depends(get_current_user)) -> Subtask:
    subtask = create_subtask_db(
        str(uuid.uuid4()),
        task_id,
        user_id,
        subtask_data.title,
        subtask_data.status
    )
    if not subtask:
        raise HTTPException(status_code=404, detail="Task not found")
    return subtask


@app.patch("/subtasks/{subtask_id}")
def update_subtask(subtask_id: str, subtask_data: SubtaskUpdate, user_id: str = Depends(get_current_user)) -> Subtask:
    result = update_subtask_db(subtask_id, user_id, status=subtask_data.status)
    if not result:
        raise HTTPException(status_code=404, detail="Subtask not found")
    return result


@app.delete("/subtasks/{subtask_id}")
def delete_subtask(subtask_id: str, user_id: str = Depends(get_current_user)) -> dict:
    if not delete_subtask_db(subtask_id, user_id):
        raise HTTPException(status_code=404, detail="Subtask not found")
    return {"status": "deleted"}


@app.post("/tasks/{task_id}/suggestions/accept", status_code=201)
def accept_suggestion_endpoint(
    task_id: str,
    accept_request: AcceptSuggestionRequest,
    user_id: str = Depends(get_current_user)
) -> dict:
    """Save one suggestion as a subtask and return the remaining candidates."""
    try:
        subtask, remaining = accept_suggestion(
            accept_request.candidates,
            accept_request.suggestion,
            task_id,
            user_id
        )
    except LookupError:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"subtask": subtask.model_dump(), "candidates": remaining}


# Subtask suggestions
async def _read_task_title(request: Request) -> Optional[str]:
    """
    taskTitle from the JSON body; None unless the body is an object holding a string.
    An undecodable body raises SuggestionError (500).
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise SuggestionError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        return None
    task_title = body.get("taskTitle")
    return task_title if isinstance(task_title, str) else None


@app.options(SUGGESTION_PATH)
def generate_subtasks_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post(SUGGESTION_PATH)
async def generate_subtasks(
    request: Request,
    _user_id: str = Depends(get_current_user),
    service: SubtaskSuggestionService = Depends(get_suggestion_service)
) -> JSONResponse:
    """Ask the model for 5-7 subtasks. Errors come back as {"error": message}."""
    try:
        subtasks = await service.generate(await _read_task_title(request))
    except SuggestionError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code, headers=CORS_HEADERS)
    except Exception as e:
        logger.exception("Subtask generation failed")
        return JSONResponse(
            {"error": str(e) or "An unexpected error occurred"},
            status_code=500,
            headers=CORS_HEADERS
        )
    return JSONResponse({"subtasks": subtasks}, headers=CORS_HEADERS)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
