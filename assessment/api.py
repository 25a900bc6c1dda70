from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from assessment.routes.attempt_routes import attempt_routes
from assessment.routes.certificate_routes import certificate_routes
from assessment.routes.progress_routes import progress_routes
from assessment.config import create_db
from assessment.errors import AssessmentError, PersistenceError
from assessment.utils.logger import configure_logging, set_request_id, clear_request_id
from fastapi import Request
from starlette.responses import Response, JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

RETRY_AFTER_SECONDS = 5

app = FastAPI(title="Assessment Engine")
logger = configure_logging()
create_db()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    try:
        logger.info("request start method=%s path=%s client=%s", request.method, request.url.path, request.client)
        response: Response = await call_next(request)
        logger.info("request end status=%s method=%s path=%s", response.status_code, request.method, request.url.path)
        response.headers["x-request-id"] = rid
        return response
    except Exception:
        logger.exception("request error method=%s path=%s", request.method, request.url.path)
        raise
    finally:
        clear_request_id()


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError) -> JSONResponse:
    headers = None
    if isinstance(exc, PersistenceError):
        logger.error("persistence error method=%s path=%s code=%s details=%s", request.method, request.url.path, exc.code, exc.details)
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    else:
        logger.warning("assessment error status=%s method=%s path=%s code=%s", exc.status_code, request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()}, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.exception("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    else:
        logger.warning("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("validation error method=%s path=%s errors=\n%s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak internal exception details to clients.
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/")
def read_root():
    return {"message": "Assessment engine is healthy"}

app.include_router(attempt_routes, prefix="/assessment")
app.include_router(progress_routes, prefix="/assessment")
app.include_router(certificate_routes, prefix="/assessment")

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
