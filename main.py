import os
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import Dict
from urllib.parse import parse_qsl

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from loguru import logger
from dotenv import load_dotenv
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException as StarletteHTTPException

from errors import InventoryError, StorageError, ValidationError
from render import render_page
from storage import ProductStore

# Chargement des variables d'environnement
load_dotenv()

SERVICE_NAME = "inventory-manager"
DEFAULT_DATABASE_PATH = "products.db"

# Config logging JSON (fichier) + console
logger.remove()
logger.add(
    sink=os.getenv("LOG_FILE", "logs.json"),
    format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
    level=os.getenv("LOG_LEVEL", "INFO"),
    serialize=True,
    rotation="1 day",
)
logger.add(sys.stderr, level=os.getenv("LOG_LEVEL", "INFO"))

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = ProductStore.open(os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH))
    app.state.store = store
    try:
        yield
    finally:
        store.close()


app = FastAPI(title="Inventory Manager", lifespan=lifespan)


def get_store(request: Request) -> ProductStore:
    return request.app.state.store


# Middleware pour logger les requests avec correlation ID
@app.middleware("http")
async def log_requests(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.info(
            f"Request: {request.method} {request.url.path}",
            extra={"method": request.method, "url": str(request.url), "trace_id": trace_id}
        )

        response = await call_next(request)

        latency = time.time() - start_time
        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path
        ).observe(latency)

        logger.info(
            f"Response status: {response.status_code}",
            extra={"status": response.status_code, "latency": latency, "trace_id": trace_id}
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Route inconnue ou mauvaise méthode -> 404 texte
    if exc.status_code in (404, 405):
        logger.warning(f"No route for {request.method} {request.url.path}")
        return PlainTextResponse("Page not found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def error_response(endpoint: str, exc: Exception, message: str) -> PlainTextResponse:
    """Log an error raised inside a route and turn it into a plain 500."""
    if isinstance(exc, ValidationError):
        error_type = "validation"
    elif isinstance(exc, StorageError):
        error_type = "storage"
    else:
        error_type = "unexpected"

    if isinstance(exc, InventoryError):
        logger.error(f"{message}: {exc}", extra={"error_type": error_type})
    else:
        logger.exception(f"{message}: {exc!r}")
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=endpoint, error_type=error_type).inc()
    return PlainTextResponse(message, status_code=500)


async def read_form_body(request: Request) -> Dict[str, str]:
    """Read the whole request body and decode it as a urlencoded form.

    Only the first value of a repeated field is kept.
    """
    chunks = []
    async for chunk in request.stream():
        chunks.append(chunk)
    body = b"".join(chunks)

    fields: Dict[str, str] = {}
    for key, value in parse_qsl(body.decode("utf-8"), keep_blank_values=True):
        fields.setdefault(key, value)
    return fields


@app.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/", response_class=HTMLResponse)
async def home(store: ProductStore = Depends(get_store)):
    logger.info("Fetching all products")
    try:
        products = await store.list_products()
    except Exception as e:
        return error_response("/", e, "Internal server error")
    return HTMLResponse(render_page(products))


@app.post("/adicionar_produto")
async def add_product(request: Request, store: ProductStore = Depends(get_store)):
    try:
        form = await read_form_body(request)
        logger.info(f"Adding product: {form.get('productName')!r}")
        await store.insert_product(form.get("productName"), form.get("productQuantity"))
    except Exception as e:
        return error_response("/adicionar_produto", e, "Error adding product")
    return RedirectResponse(url="/", status_code=302)


@app.post("/excluir_produto")
async def delete_product(request: Request, store: ProductStore = Depends(get_store)):
    try:
        form = await read_form_body(request)
        logger.info(f"Deleting product {form.get('productId')!r}")
        await store.delete_product(form.get("productId"))
    except Exception as e:
        return error_response("/excluir_produto", e, "Error deleting product")
    return RedirectResponse(url="/", status_code=302)


def run():
    port = int(os.getenv("PORT", 3000))
    host = os.getenv("HOST", "0.0.0.0")
    logger.info(f"Starting Inventory Manager on http://{host}:{port}")
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
