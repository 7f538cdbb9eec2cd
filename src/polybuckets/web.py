"""HTML front end: bucket list, prefix listings and object downloads."""

from contextlib import asynccontextmanager
from fastapi import Depends
from fastapi import FastAPI
from fastapi import Request
from fastapi import Response
from fastapi.responses import StreamingResponse
from fastapi.templating import Jinja2Templates
from pathlib import Path
from polybuckets.config import build_service
from polybuckets.config import get_settings
from polybuckets.paths import resolve_path
from polybuckets.s3client import RemoteFetchError
from polybuckets.s3client import S3OperationError
from urllib.parse import quote

import logging
import posixpath
import time


logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024

templates = Jinja2Templates(directory=Path(__file__).parent / "templates")


def get_service(request: Request):
    return request.app.state.service


def _render(request, name, context, status_code=200):
    context = {"site_name": request.app.state.settings.site_name, **context}
    return templates.TemplateResponse(
        request, name, context, status_code=status_code
    )


def _iter_body(body):
    try:
        yield from body.iter_chunks(DOWNLOAD_CHUNK_SIZE)
    finally:
        body.close()


def _content_disposition(key):
    filename = posixpath.basename(key.rstrip("/")) or "download"
    return f"attachment; filename*=UTF-8''{quote(filename)}"


async def access_log(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    latency = time.perf_counter() - start
    extra = {
        "remote_ip": request.client.host if request.client else "",
        "host": request.headers.get("host", ""),
        "method": request.method,
        "uri": str(request.url.path)
        + (f"?{request.url.query}" if request.url.query else ""),
        "user_agent": request.headers.get("user-agent", ""),
        "status": response.status_code,
        "latency": int(latency * 1e9),
        "latency_human": f"{latency * 1000:.3f}ms",
    }
    hit_cache = getattr(request.state, "hit_cache", None)
    if hit_cache is not None:
        extra["hit_cache"] = hit_cache
        cache_expire = getattr(request.state, "cache_expire", None)
        if hit_cache and cache_expire is not None:
            extra["cache_expire"] = cache_expire.isoformat()
    logger.info("access log", extra=extra)
    return response


def create_app(settings=None, service=None):
    settings = settings or get_settings()
    if service is None:
        service = build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.service.close()

    app = FastAPI(title=settings.site_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.middleware("http")(access_log)

    @app.get("/favicon.ico")
    def favicon():
        return Response(status_code=404)

    @app.get("/download/{bucket}/{key:path}")
    def download(request: Request, bucket: str, key: str, service=Depends(get_service)):
        try:
            body = service.get_object(bucket, key)
        except RemoteFetchError as e:
            return _render(
                request,
                "error.html",
                {"error": str(e), "bucket": bucket},
                status_code=404 if e.missing else 500,
            )
        return StreamingResponse(
            _iter_body(body),
            media_type="application/octet-stream",
            headers={"Content-Disposition": _content_disposition(key)},
        )

    @app.get("/")
    def buckets(request: Request, service=Depends(get_service)):
        try:
            records = service.list_buckets()
        except S3OperationError as e:
            return _render(request, "error.html", {"error": str(e)}, status_code=500)
        return _render(request, "buckets.html", {"buckets": records})

    @app.get("/{path:path}")
    def objects(
        request: Request,
        path: str,
        refresh: str = "",
        service=Depends(get_service),
    ):
        resolved = resolve_path(path)
        context = {
            "bucket": resolved.bucket,
            "parent_prefix": resolved.parent_prefix,
            "prefix": resolved.prefix,
        }
        try:
            result = service.list_objects(
                resolved.bucket, resolved.prefix, force_refresh=refresh == "true"
            )
        except S3OperationError as e:
            return _render(
                request, "error.html", {"error": str(e), **context}, status_code=500
            )
        request.state.hit_cache = result.hit
        request.state.cache_expire = result.expiry
        return _render(
            request,
            "objects.html",
            {
                **context,
                "objects": result.objects,
                "hit_cache": result.hit,
                "last_cached": result.cached_at,
            },
        )

    return app
