"""FastAPI application: feed, swipes, applications and cover-letter preview.

Build it with ``create_app(...)`` to inject collaborators (tests do), or with
``build_app()`` to wire everything from the environment.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from jobswipe.config import DATA_DIR, PROFILES_PATH, get_env
from jobswipe.cover_letter import CoverLetterGenerator
from jobswipe.identity import HHIdentity, NotAuthenticated, ProfileDirectory
from jobswipe.log import get_logger
from jobswipe.models import Filters
from jobswipe.providers import get_providers
from jobswipe.queue import ApplicationQueue, ApplicationRequest
from jobswipe.schemas import (
    ApplicationOut,
    ApplyRequest,
    ApplyResponse,
    CandidatePayload,
    CoverLetterEdit,
    CoverLetterRequest,
    CoverLetterResponse,
    DecidedIds,
    HealthResponse,
    JobsPage,
    OkResponse,
    ResumeList,
    ResumeOut,
    ResumeSelection,
    SwipeRequest,
)
from jobswipe.sources import JobSource, SourceError, get_source
from jobswipe.store import Store
from jobswipe.submission import HHSubmitter, SubmissionError

log = get_logger(__name__)


def create_app(
    store: Store,
    queue: ApplicationQueue,
    source: JobSource,
    generator: CoverLetterGenerator,
    profiles: ProfileDirectory | None = None,
    identity: HHIdentity | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        queue.recover_interrupted()
        log.info("JobSwipe API started (data: %s)", store.data_dir)
        yield
        log.info("Shutting down, waiting for %d application(s)", queue.pending_count)
        queue.drain(timeout=30)
        queue.shutdown(wait=False)

    app = FastAPI(title="JobSwipe", version="1.0.0", lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            pending_tasks=queue.pending_count,
            timestamp=datetime.now(timezone.utc),
        )

    @app.get("/jobs", response_model=JobsPage)
    def list_jobs(
        keyword: str = "",
        area: str = "",
        employment: str = "",
        schedule: str = "",
        experience: str = "",
        page: int = Query(0, ge=0, le=100),
    ):
        filters = Filters(
            keyword=keyword, area=area, employment=employment,
            schedule=schedule, experience=experience,
        )
        try:
            result = source.fetch_page(filters, page)
        except SourceError as exc:
            log.warning("Job source failed for page %d: %s", page, exc)
            return JSONResponse(
                status_code=502,
                content={"items": [], "hasMore": False, "total": 0, "error": str(exc)},
            )
        return JobsPage(
            items=[CandidatePayload.from_candidate(c) for c in result.items],
            has_more=result.has_more,
            total=result.total,
        )

    @app.get("/jobs/decided", response_model=DecidedIds)
    def decided(profile_id: str = Query(..., alias="profileId", min_length=1)) -> DecidedIds:
        return DecidedIds(ids=sorted(store.decided_ids(profile_id)))

    @app.post("/swipes", response_model=OkResponse)
    def record_swipe(body: SwipeRequest) -> OkResponse:
        _, created = store.record_swipe(body.profile_id or "", body.candidate_id, body.direction)
        if created:
            log.info("Swipe %s on %s", body.direction.value, body.candidate_id)
        return OkResponse()

    @app.post("/apply", response_model=ApplyResponse)
    def apply(body: ApplyRequest) -> ApplyResponse:
        application_id = queue.submit(
            ApplicationRequest(
                candidate=body.candidate_snapshot.to_candidate(),
                profile_text=body.profile_text,
                is_demo=body.is_demo,
                profile_id=body.profile_id or "",
            )
        )
        return ApplyResponse(application_id=application_id)

    @app.get("/applications", response_model=List[ApplicationOut])
    def applications(
        profile_id: Optional[str] = Query(None, alias="profileId"),
    ) -> List[ApplicationOut]:
        return [ApplicationOut.from_record(r) for r in store.list_applications(profile_id)]

    @app.patch("/applications/{application_id}/cover-letter", response_model=ApplicationOut)
    def edit_cover_letter(application_id: str, body: CoverLetterEdit) -> ApplicationOut:
        record = store.get_application(application_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Application not found")
        if not store.update_cover_letter(application_id, body.cover_letter):
            raise HTTPException(status_code=409, detail="The cover letter is still being generated")
        return ApplicationOut.from_record(store.get_application(application_id))

    @app.get("/profiles/{profile_id}/resumes", response_model=ResumeList)
    def list_resumes(profile_id: str) -> ResumeList:
        if identity is None:
            raise HTTPException(status_code=503, detail="Job board sign-in is not configured")
        try:
            resumes = identity.list_resumes(profile_id)
        except NotAuthenticated as exc:
            raise HTTPException(status_code=401, detail=str(exc))
        except SubmissionError as exc:
            raise HTTPException(status_code=502, detail=str(exc))
        selected = (identity.directory.get(profile_id) or {}).get("selected_resume_id")
        return ResumeList(
            items=[ResumeOut(id=r.id, title=r.title) for r in resumes],
            selected_id=selected or None,
        )

    @app.post("/profiles/{profile_id}/resume", response_model=OkResponse)
    def select_resume(profile_id: str, body: ResumeSelection) -> OkResponse:
        if profiles is None:
            raise HTTPException(status_code=503, detail="Profiles are not configured")
        try:
            profiles.select_resume(profile_id, body.resume_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Profile not found")
        return OkResponse()

    @app.post("/cover-letter/generate", response_model=CoverLetterResponse)
    def preview_cover_letter(body: CoverLetterRequest) -> CoverLetterResponse:
        text = generator.generate(body.profile_text, body.candidate.to_candidate())
        return CoverLetterResponse(cover_letter=text)

    return app


def build_app() -> FastAPI:
    """Wire the app from environment configuration."""
    store = Store(DATA_DIR)
    profiles = ProfileDirectory(PROFILES_PATH)
    generator = CoverLetterGenerator(get_providers(get_env))
    identity = HHIdentity(
        profiles,
        client_id=get_env("HH_CLIENT_ID"),
        client_secret=get_env("HH_CLIENT_SECRET"),
    )
    queue = ApplicationQueue(store, generator, identity=identity, submitter=HHSubmitter())
    return create_app(store, queue, get_source(get_env), generator, profiles, identity)
