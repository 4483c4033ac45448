# Filename: dropdrive/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import auth as auth_router, drive as drive_router, files as files_router
from .routers import folders as folders_router, root as root_router
from .config import settings
from .db import init_db
from .exceptions import DriveError, drive_error_handler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)

origins = ["*"] if settings.cors_allow_origins == "*" else [o.strip() for o in settings.cors_allow_origins.split(",")]
allow_methods = ["*"] if settings.cors_allow_methods == "*" else [m.strip() for m in settings.cors_allow_methods.split(",")]
allow_headers = ["*"] if settings.cors_allow_headers == "*" else [h.strip() for h in settings.cors_allow_headers.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=allow_methods,
    allow_headers=allow_headers,
    # download filenames are read from this header by browser clients
    expose_headers=["Content-Disposition"],
)

app.add_exception_handler(DriveError, drive_error_handler)

app.include_router(auth_router.router)
app.include_router(files_router.router)
app.include_router(folders_router.router)
app.include_router(drive_router.router)
app.include_router(root_router.router)


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
