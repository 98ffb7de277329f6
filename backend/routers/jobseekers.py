"""
Job-seeker registration endpoints.

Protected endpoints:
    POST /api/jobseekers/register   submit profile + optional CV (multipart)
    GET  /api/jobseekers/me         the caller's own registration
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import get_current_identity
from auth.errors import CollaboratorFailure
from auth.jwt_service import AuthenticatedIdentity
from database import get_db
from models import JobSeeker
from schemas import JobSeekerCreate, JobSeekerRegisterResponse, JobSeekerResponse
from services.file_validator import validate_upload
from services.object_store import ObjectStore, get_object_store, make_object_key
from utils.audit import audit
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobseekers", tags=["jobseekers"])

DATABASE = "database"


async def _find_existing(db: AsyncSession, telegram_id: str, email: str) -> Optional[JobSeeker]:
    try:
        result = await db.execute(
            select(JobSeeker)
            .where(or_(JobSeeker.telegram_id == telegram_id, JobSeeker.email == email))
            .limit(1)
        )
    except SQLAlchemyError as exc:
        logger.error(f"Job seeker lookup failed: {exc}")
        raise CollaboratorFailure(DATABASE) from exc
    return result.scalar_one_or_none()


async def _store_cv(store: ObjectStore, telegram_id: str, cv: UploadFile) -> str:
    content = await cv.read()

    validation = validate_upload(cv.filename, content)
    if not validation.passed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"CV rejected: {'; '.join(validation.errors)}",
        )

    key = make_object_key(telegram_id, cv.filename)
    content_type = cv.content_type or "application/octet-stream"
    try:
        with LogTimer(logger, f"Uploading CV {key} to {store.name} store") as timer:
            timer.set_size(len(content))
            url = await store.upload(key, content, content_type)
    except CollaboratorFailure:
        audit.log_cv_upload(key, len(content), store.name, "failure")
        raise

    audit.log_cv_upload(key, len(content), store.name, "success")
    return url


@router.post(
    "/register",
    response_model=JobSeekerRegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_job_seeker(
    telegramId: Optional[str] = Form(None),
    phoneNumber: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    firstName: Optional[str] = Form(None),
    lastName: Optional[str] = Form(None),
    dateOfBirth: Optional[str] = Form(None),
    careerQuestions: Optional[str] = Form(None),
    cv: Optional[UploadFile] = File(None),
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    store: ObjectStore = Depends(get_object_store),
    db: AsyncSession = Depends(get_db),
):
    """
    Register the authenticated Telegram user as a job seeker.

    The Telegram ID always comes from the session token; a ``telegramId``
    form field, if sent, must match it.
    """
    try:
        form = JobSeekerCreate(
            telegramId=telegramId,
            phoneNumber=phoneNumber,
            email=email,
            firstName=firstName,
            lastName=lastName,
            dateOfBirth=dateOfBirth,
            careerQuestions=careerQuestions,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors())

    telegram_id = identity.external_id
    if form.telegram_id and form.telegram_id != telegram_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="telegramId does not match the authenticated user",
        )

    existing = await _find_existing(db, telegram_id, form.email)
    if existing:
        audit.log_registration(existing.id, telegram_id, "conflict")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job seeker with this Telegram ID or email already exists.",
        )

    cv_url = None
    if cv is not None and cv.filename:
        cv_url = await _store_cv(store, telegram_id, cv)

    job_seeker = JobSeeker(
        telegram_id=telegram_id,
        phone_number=form.phone_number,
        email=form.email,
        first_name=form.first_name,
        last_name=form.last_name,
        date_of_birth=form.date_of_birth.isoformat() if form.date_of_birth else None,
        cv_url=cv_url,
        career_questions=form.career_questions,
    )
    db.add(job_seeker)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        audit.log_registration(None, telegram_id, "conflict", has_cv=cv_url is not None)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job seeker with this Telegram ID or email already exists.",
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(f"Job seeker insert failed for telegram_id={telegram_id}: {exc}")
        audit.log_registration(
            None, telegram_id, "failure", has_cv=cv_url is not None,
            error_message="database error",
        )
        raise CollaboratorFailure(DATABASE) from exc

    await db.refresh(job_seeker)
    logger.info(f"Registered job seeker id={job_seeker.id} telegram_id={telegram_id}")
    audit.log_registration(job_seeker.id, telegram_id, "success", has_cv=cv_url is not None)

    return JobSeekerRegisterResponse(
        message="Job seeker registered successfully!",
        jobSeeker=JobSeekerResponse.model_validate(job_seeker),
    )


@router.get("/me", response_model=JobSeekerResponse)
async def get_my_registration(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Return the caller's registration, if any."""
    try:
        result = await db.execute(
            select(JobSeeker).where(JobSeeker.telegram_id == identity.external_id)
        )
    except SQLAlchemyError as exc:
        raise CollaboratorFailure(DATABASE) from exc

    job_seeker = result.scalar_one_or_none()
    if not job_seeker:
        raise HTTPException(status_code=404, detail="Job seeker not found")
    return JobSeekerResponse.model_validate(job_seeker)
