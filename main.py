from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import models  # noqa: F401  registers tables on Base.metadata
from config import get_settings
from database import Base, engine
from routes import auth, chats, plans, users
from utils.errors import DomainError, ServerError
from utils.logger import setup_api_logger

settings = get_settings()

# setup file logger for API failures
api_logger = setup_api_logger(settings.log_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    api_logger.info("GoPlan API started (environment=%s)", settings.environment)
    yield


app = FastAPI(title="GoPlan API (Auth, Plans, Chats, Users)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    api_logger.warning("%s on %s %s | status=%s | detail=%s",
                       exc.name, request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        for err in errors
    ]
    detail = "; ".join(err.get("msg", "Invalid value") for err in errors) or "Invalid request"
    api_logger.warning("ValidationError on %s %s | fields=%s", request.method, request.url.path, fields)
    return JSONResponse(
        status_code=400,
        content={"error": "ValidationError", "detail": detail, "fields": [f for f in fields if f]},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    api_logger.warning("HTTPException on %s %s | status=%s | query=%s | detail=%s",
                       request.method, request.url.path, exc.status_code, request.url.query, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    api_logger.error("Unhandled exception on %s %s | query=%s | error=%s",
                     request.method, request.url.path, request.url.query, str(exc), exc_info=exc)
    payload = ServerError().to_dict()
    if settings.debug and not settings.is_production:
        payload["debug"] = repr(exc)
    return JSONResponse(status_code=500, content=payload)


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(users.admin_router)
app.include_router(plans.router)
app.include_router(chats.router)


@app.get("/")
def root():
    return {"message": "GoPlan API is running"}


@app.get("/health")
def health():
    return {"status": "ok"}
