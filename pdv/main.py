from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from pdv.routes import products as products_routes
from pdv.routes import clients as clients_routes
from pdv.routes import orders as orders_routes
from pdv.routes import conditionals as conditionals_routes
from pdv.routes import cart as cart_routes
from pdv.routes import stats as stats_routes
from pdv.routes import events as events_routes
from pdv.core.config import settings
from pdv.core.errors import PDVError, TransientIOError
from pdv.db import session as db_session
import logging
import threading
from collections import defaultdict
import time

app = FastAPI(
    title="PDV - API de vendas e estoque",
    version="1.0.0",
    description="Catálogo, PDV, clientes, condicionais e dashboard",
    # Avoid automatic 307 redirects between /path and /path/
    # Root endpoints are registered in both forms.
    redirect_slashes=False,
)

# Configure logging level from env
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
# Use a dedicated app logger to avoid uvicorn.access formatter expectations
_req_logger = logging.getLogger("pdv.request")
_req_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
_err_logger = logging.getLogger("pdv.errors")

# In-memory request counters per route (method + path), guarded by a lock
_request_counts = defaultdict(int)
_req_lock = threading.Lock()
_global_request_count = 0


@app.middleware("http")
async def request_count_middleware(request: Request, call_next):
    route = request.scope.get("route")
    key_path = getattr(route, "path", None) or request.url.path
    key = f"{request.method} {key_path}"

    with _req_lock:
        _request_counts[key] += 1
        count_val = _request_counts[key]
        # track global count across all routes
        global _global_request_count
        _global_request_count += 1
        global_count_val = _global_request_count

    # Log every N hits to avoid spam
    if count_val % settings.REQUEST_LOG_EVERY_N == 0:
        _req_logger.info(f"Request count threshold reached: {key} -> {count_val} (global={global_count_val})")

    # the SQLAlchemy listener increments this box during the request
    db_count_box = [0]
    db_count_token = db_session.request_db_query_count.set(db_count_box)
    start = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        per_req_db_count = db_count_box[0]
        db_session.request_db_query_count.reset(db_count_token)
    duration_ms = int((time.perf_counter() - start) * 1000)

    if settings.REQUEST_LOG_VERBOSE:
        prefixes = [p.strip() for p in (settings.REQUEST_LOG_INCLUDE_PREFIXES or "").split(",") if p.strip()]
        path_full = request.url.path
        if any(path_full.startswith(pref) for pref in prefixes):
            qs = request.url.query
            path_qs = f"{path_full}?{qs}" if qs else path_full
            _req_logger.info(
                f"{request.method} {path_qs} -> {response.status_code} in {duration_ms}ms | route_count={count_val} global_count={global_count_val}"
            )
            if isinstance(per_req_db_count, int):
                _req_logger.info(f"Foram {per_req_db_count} requisições ao banco nesta requisição.")
            _req_logger.info(
                f"Total global de requisições ao banco desde o início: {db_session.get_global_db_queries_total()}."
            )
    return response


@app.exception_handler(PDVError)
async def pdv_error_handler(request: Request, exc: PDVError):
    if exc.status_code >= 500:
        _err_logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        _err_logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(OperationalError)
async def db_unavailable_handler(request: Request, exc: OperationalError):
    # reads and plain commits outside atomic() get the same 503
    return await pdv_error_handler(request, TransientIOError(f"Falha de comunicação com o banco de dados: {exc.orig}"))


# Configure CORS for local frontend dev (Vite ports by default). Adjust CORS_ORIGINS in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(products_routes.router)
app.include_router(clients_routes.router)
app.include_router(orders_routes.router)
app.include_router(conditionals_routes.router)
app.include_router(cart_routes.router)
app.include_router(stats_routes.router)
app.include_router(events_routes.router)


@app.on_event("startup")
def on_startup():
    # create database tables if they don't exist
    db_session.create_db()


@app.get("/")
def root():
    return {"status": "API rodando com sucesso 🚀"}
