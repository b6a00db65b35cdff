import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from .routes import router
from .core import init_metrics
from .crud import ensure_admin_exists
from .errors import register_error_handlers
from .models import AsyncSessionLocal, Base, engine
from .storage import build_blob_store
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging
logger = logging.getLogger('sharedesk')
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

AUTO_CREATE_TABLES = os.getenv('AUTO_CREATE_TABLES', '0') == '1'
CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()]


def create_app(session_factory=None, blob_store=None) -> FastAPI:
    """Build the application around the given storage bindings.

    Without arguments the engine from ``DATABASE_URL`` and the blob backend
    selected by ``BLOB_BACKEND`` are used.
    """
    app = FastAPI(title="Sharedesk", version="0.1.0")
    app.state.session_factory = session_factory or AsyncSessionLocal
    app.state.blob_store = blob_store or build_blob_store()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    register_error_handlers(app)

    @app.get('/healthz')
    async def healthz():
        return {'status': 'ok'}

    app.include_router(router)

    @app.middleware('http')
    async def bootstrap_admin(request: Request, call_next):
        # runs before routing, so unmatched paths also see the admin account
        async with app.state.session_factory() as db:
            await ensure_admin_exists(db)
        return await call_next(request)

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
        response = await call_next(request)
        logger.info({'msg': 'request_end', 'status': response.status_code})
        return response

    @app.on_event("startup")
    async def startup():
        # Best-effort init, don't block app from starting if a dependency fails
        try:
            init_metrics()
        except Exception as e:
            logger.warning({'msg': 'metrics_init_failed', 'error': str(e)})
        if AUTO_CREATE_TABLES:
            bind = app.state.session_factory.kw.get("bind", engine)
            async with bind.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info({'msg': 'tables_created'})

    return app


app = create_app()
