from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import check_connection, db, ensure_indexes, get_db
from errors import ServerError, ValidationError
from logger import setup_logger
from routers import api_router

logger = setup_logger("main")

# App and CORS
app = FastAPI(
    title="Rating Voyage API",
    description="Store ratings with role-based dashboards",
    version="1.0.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


# Error rendering: every failure answers {"message": ...}
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail, "errors": exc.errors})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err["loc"] if p not in ("body", "query", "path")),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    err = ServerError()
    return JSONResponse(status_code=err.status_code, content={"message": err.detail})


@app.on_event("startup")
def on_startup():
    logger.info("Starting Rating Voyage API")
    try:
        ensure_indexes(db)
        logger.info("Indexes ensured")
    except PyMongoError as e:
        logger.error(f"Could not ensure indexes: {e}")


# Utility endpoints
@app.get("/")
def root():
    return {"message": "Rating Voyage API running"}


@app.get("/test")
def test_database(database=Depends(get_db)):
    try:
        return {"backend": "ok", **check_connection(database)}
    except PyMongoError as e:
        return {"backend": "ok", "database": f"error: {str(e)[:80]}"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
