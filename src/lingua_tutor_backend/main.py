'''

'''
import asyncio
import contextlib
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .database.engine import create_db_engine_and_session_factory, create_tables, dispose_db_engine
from .common.exceptions import LinguaTutorError
from .common.logger import log
from .common.config import settings
from .workers.task_runner import task_runner_loop
from .api import auth, teachers, bookings, lessons, payouts, support, notifications

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    create_db_engine_and_session_factory()
    if settings.AUTO_CREATE_TABLES:
        await create_tables()

    runner = None
    if settings.SCHEDULER_ENABLED:
        runner = asyncio.create_task(task_runner_loop())

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    if runner is not None:
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
    log.info("Application lifespan shutdown...")
    await dispose_db_engine()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of testing frontend
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---

# --- Exception Handlers ---
@app.exception_handler(LinguaTutorError)
async def domain_error_handler(request: Request, exc: LinguaTutorError):
    log.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    log.warning(f"Invalid request body on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())}
    )

@app.get("/")
async def health_check():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}

app.include_router(auth.router)
app.include_router(teachers.router)
app.include_router(bookings.router)
app.include_router(lessons.router)
app.include_router(payouts.router)
app.include_router(support.router)
app.include_router(notifications.router)
