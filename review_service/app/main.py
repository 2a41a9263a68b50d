import logging
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import CORS_ORIGINS, DATABASE_URL, REVIEW_PROCESSING_MESSAGE, setup_logging
from .db import ReviewStatus, init_db, make_engine, make_session_factory
from .errors import (
    EXTERNAL_SERVICE_MESSAGE,
    HTTP_STATUS_BY_KIND,
    UNEXPECTED_ERROR_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
    ErrorKind,
    ErrorResponse,
    Failure,
    review_not_found_message,
)
from .gutendex_client import GutendexClient
from .models import ReviewRequest, ReviewResponse, ReviewUpdateRequest
from .service import ReviewService
from .store import ReviewStore
from .task_runner import TaskRunner

logger = logging.getLogger(__name__)


# ── Error bodies ─────────────────────────────────────────────────────

def error_response(
    request: Request,
    status_code: int,
    message: str,
    validation_errors: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=HTTPStatus(status_code).phrase,
        message=message,
        path=request.url.path,
        validationErrors=validation_errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def failure_response(request: Request, failure: Failure) -> JSONResponse:
    status_code = HTTP_STATUS_BY_KIND[failure.kind]
    if failure.kind == ErrorKind.EXTERNAL_SERVICE:
        logger.error(f"External API error: {failure.message}")
        return error_response(request, status_code, EXTERNAL_SERVICE_MESSAGE)
    logger.warning(f"{failure.kind.value}: {failure.message}")
    return error_response(request, status_code, failure.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on request: {request.url.path}")
    validation_errors: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = loc[-1] if loc else "body"
        ctx_error = (err.get("ctx") or {}).get("error")
        validation_errors[field] = str(ctx_error) if ctx_error else err.get("msg", "Invalid value")
    return error_response(request, 400, VALIDATION_FAILED_MESSAGE, validation_errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(request, exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error occurred at {request.url.path}: {exc}", exc_info=exc)
    return error_response(request, 500, UNEXPECTED_ERROR_MESSAGE)


# ── Routes ───────────────────────────────────────────────────────────

def get_service(request: Request) -> ReviewService:
    return request.app.state.review_service


def _review_json(review, status_code: int = 200) -> JSONResponse:
    body = ReviewResponse.model_validate(review).model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


reviews_router = APIRouter(tags=["reviews"])
books_router = APIRouter(tags=["books"])


@reviews_router.post("", status_code=202, response_model=ReviewResponse)
def create_review(req: ReviewRequest, request: Request, service: ReviewService = Depends(get_service)):
    logger.info(f"Received request to create review for book ID: {req.id} with score: {req.score}")
    result = service.create_review(req)
    if result.failed:
        return failure_response(request, result.failure)
    return _review_json(result.value, status_code=202)


@reviews_router.get("", response_model=list[ReviewResponse])
def list_reviews(
    status_filter: Optional[ReviewStatus] = Query(default=None, alias="status"),
    service: ReviewService = Depends(get_service),
):
    if status_filter is not None:
        return service.get_reviews_by_status(status_filter)
    return service.get_all_reviews()


@reviews_router.get("/book/{book_id}", response_model=list[ReviewResponse])
def list_reviews_for_book(book_id: str, request: Request, service: ReviewService = Depends(get_service)):
    result = service.get_reviews_by_book_id(book_id)
    if result.failed:
        return failure_response(request, result.failure)
    return result.value


@reviews_router.get("/{review_id}")
def get_review(review_id: int, request: Request, service: ReviewService = Depends(get_service)):
    review = service.get_review(review_id)
    if review is None:
        return error_response(request, 404, review_not_found_message(review_id))
    if not review.processed:
        logger.debug(f"Review {review_id} is still processing with status: {review.status}")
        return PlainTextResponse(REVIEW_PROCESSING_MESSAGE, status_code=202)
    return _review_json(review)


@reviews_router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: int,
    req: ReviewUpdateRequest,
    request: Request,
    service: ReviewService = Depends(get_service),
):
    result = service.update_review(review_id, req)
    if result.failed:
        return failure_response(request, result.failure)
    return _review_json(result.value)


@reviews_router.delete("/{review_id}", status_code=204)
def delete_review(review_id: int, request: Request, service: ReviewService = Depends(get_service)):
    logger.warning(f"Deleting review ID: {review_id} - this operation is permanent")
    result = service.delete_review(review_id)
    if result.failed:
        return failure_response(request, result.failure)
    return Response(status_code=204)


@books_router.get("/search")
def search_books(
    request: Request,
    query: str = Query(..., description="Title, author or subject"),
    service: ReviewService = Depends(get_service),
):
    result = service.search_books(query)
    if result.failed:
        return failure_response(request, result.failure)
    # Gutendex JSON is passed through untouched
    return Response(content=result.value, media_type="application/json")


# ── App ──────────────────────────────────────────────────────────────

def build_service(
    database_url: str = DATABASE_URL, catalog: Optional[GutendexClient] = None
) -> ReviewService:
    engine = make_engine(database_url)
    init_db(engine)
    store = ReviewStore(make_session_factory(engine))
    return ReviewService(store, catalog or GutendexClient(), TaskRunner())


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = getattr(app.state, "review_service", None) is None
    if owned:
        app.state.review_service = build_service(app.state.database_url, app.state.catalog)
    yield
    if owned:
        service: ReviewService = app.state.review_service
        service.runner.shutdown()
        service.catalog.close()
        app.state.review_service = None


def create_app(
    service: Optional[ReviewService] = None,
    database_url: str = DATABASE_URL,
    catalog: Optional[GutendexClient] = None,
) -> FastAPI:
    """Build the API.

    A ready-made service is used as-is and never shut down here. Without
    one, the service is built on startup from ``database_url`` and
    ``catalog`` and torn down on shutdown.
    """
    setup_logging()
    app = FastAPI(title="Book Review Service", lifespan=lifespan)
    app.state.review_service = service
    app.state.database_url = database_url
    app.state.catalog = catalog

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(reviews_router, prefix="/api/reviews")
    app.include_router(reviews_router, prefix="/review", include_in_schema=False)
    app.include_router(books_router, prefix="/api/books")
    app.include_router(books_router, prefix="/book", include_in_schema=False)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
