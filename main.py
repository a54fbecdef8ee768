"""
Oral Cancer Screening API

Collects patient history and an oral-cavity image, asks a vision-capable
language model for a clinical opinion, and stores the parsed result.
"""
import os
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Callable, List
from uuid import uuid4

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

import crud
from analysis import process_scan, run_analysis
from auth import AuthUser, get_current_user, get_password_hash, token_for_user, verify_password
from config import Settings, get_settings
from database import Base, SessionLocal, engine, get_db
from errors import AnalysisError, ScreeningError
from imaging import decode_image
from logging_config import configure_logging, get_logger, log_request_context
from models import ScanStatus
from pdf_generator import generate_scan_report
from scan_store import DatabaseScanStore, NullScanStore, ScanStore
from schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ErrorResponse,
    PatientIn,
    PatientOut,
    ScanCreate,
    ScanOut,
    Token,
    UserCreate,
    UserOut,
)
from vision_client import VisionClient, VisionModel

configure_logging()
logger = get_logger(__name__)


# ------------------------
# Lifespan
# ------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    Base.metadata.create_all(bind=engine)
    os.makedirs(settings.reports_dir, exist_ok=True)
    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        config=settings.get_safe_config_dict(),
    )
    if settings.dev_auth_bypass:
        logger.warning("Development token bypass is enabled")
    yield
    logger.info("Application shutting down")


# ------------------------
# FastAPI app
# ------------------------
_settings = get_settings()
app = FastAPI(
    title=_settings.app_name,
    description=__doc__,
    version=_settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if _settings.debug else None,
    redoc_url="/redoc" if _settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid4())
    start_time = time.perf_counter()
    log_request_context(request_id=request_id, method=request.method, path=request.url.path)

    response = await call_next(request)

    processing_time = int((time.perf_counter() - start_time) * 1000)
    response.headers["X-Request-ID"] = request_id
    logger.info("Request completed", status_code=response.status_code, processing_time_ms=processing_time)
    return response


# ------------------------
# Error handlers
# ------------------------
def _error(status_code: int, error: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            # drop the leading "body"/"query"/"path" marker
            "field": ".".join(str(part) for part in err["loc"][1:]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    logger.info("Request validation failed", errors=details)
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid request data", details)


@app.exception_handler(ScreeningError)
async def screening_exception_handler(request: Request, exc: ScreeningError):
    return _error(exc.status_code, exc.message, exc.details)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception", error=str(exc))
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!")


# ------------------------
# Dependencies
# ------------------------
@lru_cache
def _vision_client() -> VisionClient:
    return VisionClient(get_settings())


def get_vision_model() -> VisionModel:
    return _vision_client()


def get_scan_store(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> ScanStore:
    if settings.persist_analyses:
        return DatabaseScanStore(db)
    return NullScanStore()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


# ============================================================
# ROOT / HEALTH
# ============================================================
@app.get("/")
async def root(settings: Settings = Depends(get_settings)):
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
    }


@app.get("/health")
def health_check(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        db.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=str(e))
        database_ok = False

    checks = {
        "database": database_ok,
        "anthropic_configured": bool(settings.anthropic_api_key),
    }
    if all(checks.values()):
        overall = "healthy"
    elif database_ok:
        overall = "degraded"
    else:
        overall = "unhealthy"
    return {
        "status": overall,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }


# ============================================================
# AUTH ENDPOINTS
# ============================================================
@app.post("/api/auth/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = crud.create_user(
        db,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        name=payload.name,
    )
    logger.info("User registered", user_id=user.id)
    return user


@app.post("/api/auth/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = crud.get_user_by_email(db, form_data.username)
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=token_for_user(user, settings), user=UserOut.model_validate(user))


@app.get("/api/auth/me", response_model=UserOut)
def me(current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_user(db, current_user.user_id)


# ============================================================
# ANALYZE ENDPOINT
# ============================================================
@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze(
    payload: AnalyzeRequest,
    current_user: AuthUser = Depends(get_current_user),
    model: VisionModel = Depends(get_vision_model),
    store: ScanStore = Depends(get_scan_store),
    db: Session = Depends(get_db),
):
    try:
        outcome = run_analysis(
            payload.image_base64,
            payload.histopathological_data,
            current_user.user_id,
            model,
            store,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to store analysis", error=str(e))
        raise AnalysisError(details=str(e)) from e

    return AnalyzeResponse(
        analysis=outcome.analysis,
        confidence=outcome.confidence,
        risk=outcome.risk,
        raw_analysis=outcome.raw_analysis,
        scan_id=outcome.scan_id,
    )


# ============================================================
# SCAN ENDPOINTS
# ============================================================
@app.get("/api/scans", response_model=List[ScanOut])
def list_scans(current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.list_scans(db, current_user.user_id)


@app.post("/api/scans", response_model=ScanOut, status_code=status.HTTP_201_CREATED)
def create_scan(
    payload: ScanCreate,
    background_tasks: BackgroundTasks,
    current_user: AuthUser = Depends(get_current_user),
    model: VisionModel = Depends(get_vision_model),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    db: Session = Depends(get_db),
):
    image = decode_image(payload.image_data)

    if payload.patient_id and crud.get_patient(db, payload.patient_id, current_user.user_id) is None:
        raise HTTPException(status_code=404, detail="Patient not found")

    scan = crud.create_scan(
        db,
        user_id=current_user.user_id,
        image_url=image.data,
        patient_id=payload.patient_id,
        status=ScanStatus.PROCESSING,
    )
    logger.info("Scan queued", scan_id=scan.id, user_id=current_user.user_id)

    background_tasks.add_task(process_scan, scan.id, image, model, session_factory)
    return scan


@app.get("/api/scans/{scan_id}", response_model=ScanOut)
def get_scan(scan_id: str, current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    scan = crud.get_scan(db, scan_id, current_user.user_id)
    if scan is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    return scan


@app.get("/api/scans/{scan_id}/report")
def download_report(
    scan_id: str,
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    scan = crud.get_scan(db, scan_id, current_user.user_id)
    if scan is None:
        raise HTTPException(status_code=404, detail="Scan not found")
    if scan.status != ScanStatus.COMPLETED:
        raise HTTPException(status_code=409, detail="Scan analysis is not completed")

    os.makedirs(settings.reports_dir, exist_ok=True)
    pdf_path = os.path.join(settings.reports_dir, f"Report_{scan.id}.pdf")
    generate_scan_report({
        "scan_id": scan.id,
        "scan_date": scan.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        "doctor_name": scan.user.name or scan.user.email,
        "patient_name": scan.patient.name if scan.patient else None,
        "risk": scan.risk,
        "confidence": scan.confidence,
        "analysis": scan.analysis,
        "image_data": scan.image_url,
        "patient_data": scan.patient_data,
    }, pdf_path)
    return FileResponse(path=pdf_path, filename=f"Report_{scan.id}.pdf", media_type="application/pdf")


# ============================================================
# PATIENT ENDPOINTS
# ============================================================
@app.get("/api/patients", response_model=List[PatientOut])
def list_patients(current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.list_patients(db, current_user.user_id)


@app.post("/api/patients", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientIn,
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient = crud.create_patient(db, current_user.user_id, payload)
    logger.info("Patient created", patient_id=patient.id, doctor_id=current_user.user_id)
    return patient


@app.get("/api/patients/{patient_id}", response_model=PatientOut)
def get_patient(patient_id: str, current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    patient = crud.get_patient(db, patient_id, current_user.user_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@app.put("/api/patients/{patient_id}", response_model=PatientOut)
def update_patient(
    patient_id: str,
    payload: PatientIn,
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    patient = crud.update_patient(db, patient_id, current_user.user_id, payload)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@app.delete("/api/patients/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(patient_id: str, current_user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    if not crud.delete_patient(db, patient_id, current_user.user_id):
        raise HTTPException(status_code=404, detail="Patient not found")
    logger.info("Patient deleted", patient_id=patient_id, doctor_id=current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# RUN
# ============================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=_settings.host, port=_settings.port)
