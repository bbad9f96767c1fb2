import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure

import ads
import settings
import users
from context import AppContext, build_context
from database import Store, connect
from errors import StoreError, StoreUnavailable
from logging_setup import get_logger
from schemas import AdCompletion, AdsConfigUpdate, ChapterUpsert, WorkCreate
from seed import seed_store

log = get_logger()


def prepare_store(store: Store, seed_dir: Optional[str]) -> None:
    store.ensure_indexes()
    if seed_dir:
        seed_store(store, seed_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned_store = None
    if getattr(app.state, "context", None) is None:
        try:
            owned_store = connect(settings.database_url(), settings.database_name())
            prepare_store(owned_store, settings.seed_data_dir())
        except StoreError as e:
            log.critical("Error preparing MongoDB: %s", e.message)
            if owned_store is not None:
                owned_store.close()
            raise SystemExit(1)
        app.state.context = build_context(owned_store)
    app.state.context.works.sync_ids()
    app.state.context.aggregate.rebuild()
    try:
        yield
    finally:
        log.info("Shutting down")
        if owned_store is not None:
            owned_store.close()


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    app = FastAPI(title="Rovel Reading API", lifespan=lifespan)
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(ConnectionFailure, connection_error_handler)
    app.add_exception_handler(RequestValidationError, request_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    register_routes(app)
    return app


# -------------------- Helpers --------------------

def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def connection_error_handler(request: Request, exc: ConnectionFailure):
    # Raised while iterating a cursor, outside the Store's own translation
    return await store_error_handler(request, StoreUnavailable(str(exc)))


async def request_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": message or "Invalid request"})


async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_routes(app: FastAPI) -> None:

    # -------------------- Health --------------------

    @app.get("/")
    def read_root():
        return {"message": "Rovel reading backend running"}

    @app.get("/test")
    def test_database(ctx: AppContext = Depends(get_context)):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            response["database_name"] = ctx.store.name
            response["collections"] = ctx.store.collection_names()[:10]
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except StoreUnavailable as e:
            response["database"] = f"⚠️  Error: {e.message[:50]}"
        return response

    # -------------------- Works --------------------

    @app.get("/api/data")
    def list_all(ctx: AppContext = Depends(get_context)):
        return ctx.aggregate.rebuild()

    @app.get("/api/manga")
    def list_for_admin(ctx: AppContext = Depends(get_context)):
        return ctx.aggregate.rebuild()

    @app.get("/api/manga/{work_id}")
    def get_work(work_id: int, ctx: AppContext = Depends(get_context)):
        return ctx.works.get(work_id).model_dump()

    @app.post("/api/manga")
    def create_work(payload: WorkCreate, ctx: AppContext = Depends(get_context)):
        work = ctx.works.create(payload.model_dump())
        ctx.aggregate.rebuild()
        return {"success": True, "id": work.id}

    @app.put("/api/manga/{work_id}")
    def update_work(work_id: int, patch: Dict[str, Any] = Body(...), ctx: AppContext = Depends(get_context)):
        ctx.works.update(work_id, patch)
        ctx.aggregate.rebuild()
        return {"success": True}

    @app.delete("/api/manga/{work_id}")
    def delete_work(work_id: int, ctx: AppContext = Depends(get_context)):
        ctx.works.delete(work_id)
        ctx.aggregate.rebuild()
        return {"success": True}

    # -------------------- Chapters --------------------

    @app.get("/api/manga/{work_id}/chapters")
    def list_chapters(work_id: int, ctx: AppContext = Depends(get_context)):
        return ctx.chapters.list_for_work(work_id)

    @app.post("/api/manga/{work_id}/chapters")
    def upsert_chapter(work_id: int, chapter: ChapterUpsert, ctx: AppContext = Depends(get_context)):
        ctx.chapters.upsert(work_id, str(chapter.chapterId), chapter.title, chapter.pages, chapter.content)
        ctx.aggregate.rebuild()
        return {"success": True}

    @app.delete("/api/manga/{work_id}/chapters/{chapter_id}")
    def delete_chapter(work_id: int, chapter_id: str, ctx: AppContext = Depends(get_context)):
        ctx.chapters.delete(work_id, chapter_id)
        ctx.aggregate.rebuild()
        return {"success": True}

    @app.get("/chapter/{manga}/{chapter_id}")
    def read_chapter(manga: str, chapter_id: str, user: str = "guest", ctx: AppContext = Depends(get_context)):
        # Advisory only: the chapter is served either way
        ctx.ad_gate.check_completion(user, manga, chapter_id)
        return ctx.chapters.get(manga, chapter_id)

    @app.get("/direct-chapter/{manga}/{chapter_id}")
    def read_chapter_direct(manga: str, chapter_id: str, ctx: AppContext = Depends(get_context)):
        return ctx.chapters.get(manga, chapter_id)

    # -------------------- Ads --------------------

    @app.get("/api/ads-config")
    def get_ads_config(ctx: AppContext = Depends(get_context)):
        return ads.get_config(ctx.store)

    @app.post("/api/ads-config")
    def update_ads_config(body: AdsConfigUpdate, ctx: AppContext = Depends(get_context)):
        config = ads.update_config(ctx.store, body.enabled, body.adUnits, body.adFrequency)
        return {"success": True, "config": config}

    @app.post("/ads-complete")
    def ads_complete(body: Any = Body(None), ctx: AppContext = Depends(get_context)):
        user_id, work_key, chapter_id = AdCompletion.from_body(body).key_parts()
        return ctx.ad_gate.record_completion(user_id, work_key, chapter_id)

    # -------------------- Users --------------------

    @app.post("/api/guest-user")
    def create_guest_user(user_agent: Optional[str] = Header(None), ctx: AppContext = Depends(get_context)):
        return {"success": True, "user": users.create_guest(ctx.store, user_agent)}

    @app.get("/api/users")
    def list_users(ctx: AppContext = Depends(get_context)):
        return users.list_users(ctx.store)

    @app.delete("/api/users/{user_id}")
    def delete_user(user_id: str, ctx: AppContext = Depends(get_context)):
        users.delete_user(ctx.store, user_id)
        return {"success": True}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = settings.port()
    uvicorn.run(app, host="0.0.0.0", port=port)
