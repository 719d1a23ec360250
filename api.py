import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field, field_validator

from config import Settings, settings
from database import initialize_database
from library import Library, LibraryError

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Book not found."


# --- Models ---
class BookModel(BaseModel):
    id: int = Field(description="The auto-generated ID of the book.")
    title: str = Field(description="The book title")
    author: str = Field(description="The book author")


class BookPayload(BaseModel):
    title: str = Field(description="The book title")
    author: str = Field(description="The book author")

    @field_validator("title", "author")
    @classmethod
    def must_encode_as_utf8(cls, value: str) -> str:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValueError("must be valid UTF-8 text") from None
        return value

    model_config = {
        "json_schema_extra": {
            "examples": [{"title": "The Subtle Art of Not Giving a F.", "author": "Mark Manson"}]
        }
    }


class ErrorModel(BaseModel):
    error: str
    message: str


class NotFound(Exception):
    """Raised when the requested id has no row. Update answers 400 instead of 404."""

    def __init__(self, status_code: int = 404) -> None:
        super().__init__(NOT_FOUND_MESSAGE)
        self.status_code = status_code


# --- Dependencies ---
def get_library(request: Request) -> Library:
    """Hands the library built at startup to each request."""
    return request.app.state.library


def _require_book(library: Library, book_id: int, status_code: int = 404) -> None:
    # Existence check and the following write are separate statements; a concurrent delete can slip between them.
    if not library.get_by_id(book_id):
        raise NotFound(status_code=status_code)


# --- Routes ---
router = APIRouter(prefix="/books", tags=["Books"])

_server_error = {500: {"model": ErrorModel, "description": "Internal server error."}}


@router.get("", response_model=List[BookModel], responses=_server_error)
def list_books(library: Library = Depends(get_library)):
    """Returns the list of all the books."""
    return [b.to_dict() for b in library.list_all()]


@router.get(
    "/{book_id}",
    response_model=List[BookModel],
    responses={404: {"description": "The book was not found."}, **_server_error},
)
def get_book(book_id: int, library: Library = Depends(get_library)):
    """Get the book by ID."""
    books = library.get_by_id(book_id)
    if not books:
        raise NotFound()
    return [b.to_dict() for b in books]


@router.post(
    "",
    status_code=201,
    response_class=PlainTextResponse,
    responses={201: {"description": "The book was successfully created."}, **_server_error},
)
def create_book(payload: BookPayload, library: Library = Depends(get_library)):
    """Create a new book."""
    new_id = library.insert(payload.title, payload.author)
    logger.info("Created book %s: %s", new_id, payload.title)
    return PlainTextResponse(f"{payload.title} added!", status_code=201)


@router.put(
    "/{book_id}",
    status_code=201,
    response_model=BookPayload,
    responses={400: {"description": "The book was not found."}, **_server_error},
)
def update_book(book_id: int, payload: BookPayload, library: Library = Depends(get_library)):
    """Update the book by the ID."""
    _require_book(library, book_id, status_code=400)
    library.update_by_id(book_id, payload.title, payload.author)
    return JSONResponse(payload.model_dump(), status_code=201)


@router.delete(
    "/{book_id}",
    status_code=201,
    response_class=PlainTextResponse,
    responses={404: {"description": "The book was not found."}, **_server_error},
)
def delete_book(book_id: int, library: Library = Depends(get_library)):
    """Remove the book by ID."""
    _require_book(library, book_id)
    library.delete_by_id(book_id)
    return PlainTextResponse("Book has been deleted", status_code=201)


# --- Error handlers ---
async def not_found_handler(request: Request, exc: NotFound) -> PlainTextResponse:
    return PlainTextResponse(str(exc), status_code=exc.status_code)


async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
    # Driver messages are passed through untouched
    return JSONResponse(
        status_code=500,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


async def bad_request_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # The rejected input is left out; it may not even be encodable
    detail = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "BadRequest", "detail": jsonable_encoder(detail)},
    )


# --- Application ---
def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application. The connection pool lives for the app's lifespan."""
    app_settings = app_settings or settings
    logging.basicConfig(level=app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool = initialize_database(app_settings.database_file, app_settings.database_pool_size)
        app.state.pool = pool
        app.state.library = Library(pool)
        try:
            yield
        finally:
            pool.close()

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="A simple FastAPI Library API",
        docs_url="/api-docs",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %d %.1f ms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.get("/health")
    def health(request: Request):
        """Lightweight health probe that touches the database."""
        db_ok = True
        try:
            with request.app.state.pool.connection() as conn:
                conn.execute("SELECT 1")
        except Exception:
            logger.warning("Health check could not reach the database", exc_info=True)
            db_ok = False
        return {"status": "healthy", "db": db_ok}

    app.include_router(router)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(LibraryError, library_error_handler)
    app.add_exception_handler(RequestValidationError, bad_request_handler)
    return app


app = create_app()
