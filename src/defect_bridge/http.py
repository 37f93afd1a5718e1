from __future__ import annotations

import http.client
import os
import ssl
from dataclasses import dataclass
from urllib import error, request

import certifi


class HttpError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


@dataclass(frozen=True)
class HttpResponse:
    status: int
    headers: dict[str, str]
    text: str


def post_xml(
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    timeout: int = 60,
) -> HttpResponse:
    merged_headers = {"Content-Type": "text/xml; charset=utf-8"}
    merged_headers.update(headers or {})
    req = request.Request(
        url=url,
        data=body.encode("utf-8"),
        headers=merged_headers,
        method="POST",
    )
    context = _build_ssl_context() if url.startswith("https") else None
    try:
        with request.urlopen(req, timeout=timeout, context=context) as response:
            text = response.read().decode("utf-8", errors="replace")
            normalized_headers = {k.lower(): v for k, v in response.headers.items()}
            return HttpResponse(
                status=response.status,
                headers=normalized_headers,
                text=text,
            )
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise HttpError(
            f"HTTP {exc.code} for {url}: {detail[:400]}",
            status=exc.code,
            body=detail,
        ) from exc
    except error.URLError as exc:
        raise HttpError(f"Failed request to {url}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise HttpError(f"Timed out after {timeout}s waiting for {url}") from exc
    except (http.client.HTTPException, OSError) as exc:
        raise HttpError(f"Failed request to {url}: {exc!r}") from exc


def _build_ssl_context() -> ssl.SSLContext:
    if _env_true("DEFECT_BRIDGE_INSECURE_SKIP_VERIFY"):
        return ssl._create_unverified_context()

    bundle = (
        os.getenv("DEFECT_BRIDGE_CA_BUNDLE")
        or os.getenv("SSL_CERT_FILE")
        or os.getenv("REQUESTS_CA_BUNDLE")
    )
    if bundle:
        return ssl.create_default_context(cafile=bundle)

    return ssl.create_default_context(cafile=certifi.where())


def _env_true(name: str) -> bool:
    value = (os.getenv(name) or "").strip().lower()
    return value in {"1", "true", "yes", "on"}
