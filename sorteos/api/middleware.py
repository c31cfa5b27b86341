"""
Middleware and request helpers for the API.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from sorteos.config import settings

# Receipts and images travel as URLs, so request bodies are small forms
MAX_REQUEST_BYTES = 1_000_000

# Responses under these prefixes carry per-user data
PRIVATE_PREFIXES = ("/v1/admin", "/v1/me", "/v1/auth")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "same-origin",
    # JSON only; the Swagger pages at /docs load their own assets
    "Content-Security-Policy": "frame-ancestors 'none'; base-uri 'none'",
}


def _is_trusted_proxy(host: str) -> bool:
    trusted = settings.trusted_proxy_ips or set()
    return "*" in trusted or host in trusted


def get_client_ip(request: Request) -> str:
    """
    The caller's address for request logs.

    Forwarded headers count only when proxy headers are enabled and the
    direct peer is a trusted proxy.
    """
    peer = request.client.host if request.client else ""
    if not (settings.trust_proxy_headers and _is_trusted_proxy(peer)):
        return peer

    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or request.headers.get("x-real-ip", "").strip() or peer


def setup_compression(app: FastAPI) -> None:
    # Raffle and transaction listings are the large responses
    app.add_middleware(GZipMiddleware, minimum_size=1000)


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(settings.cors_allow_origins),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
        max_age=settings.cors_max_age,
    )


def setup_security_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if request.url.path.startswith(PRIVATE_PREFIXES):
            response.headers.setdefault("Cache-Control", "no-store")
        return response


def setup_request_size_limit(app: FastAPI) -> None:
    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > MAX_REQUEST_BYTES:
            return JSONResponse(
                status_code=413,
                content={"error": "payload_too_large", "message": "El contenido enviado es demasiado grande"},
                headers={"Cache-Control": "no-store"},
            )
        return await call_next(request)
