from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from academics import router as academics_router
from assignments import router as assignments_router
from auth import router as auth_router
from bulk_import import router as bulk_import_router
from core import cache, db, fcm, settings, uploads
from core.errors import register_exception_handlers
from core.log import setup_logging
from notifications import router as notifications_router
from students import router as students_router


@asynccontextmanager
async def lifespan(_: FastAPI):
    # One pool, one cache and one Firebase app per process.
    setup_logging()
    await db.init_pool()
    cache.init_cache()
    fcm.init_app()
    try:
        yield
    finally:
        fcm.close_app()
        cache.close_cache()
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router.router, tags=["auth"])
app.include_router(academics_router.router, tags=["academics"])
# Bulk upload routes go before /api/admin/students/{student_id}.
app.include_router(bulk_import_router.router, tags=["bulk-import"])
app.include_router(students_router.router, tags=["students"])
app.include_router(assignments_router.router, tags=["assignments"])
app.include_router(notifications_router.router, tags=["notifications"])

upload_dir = settings.upload_dir()
upload_dir.mkdir(parents=True, exist_ok=True)
app.mount(f"/{uploads.PUBLIC_PREFIX}", StaticFiles(directory=upload_dir), name="uploads")


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/test")
def api_test() -> dict:
    return {"success": True, "message": "API is working"}


@app.get("/")
def root() -> dict:
    return {"message": "school management api"}
