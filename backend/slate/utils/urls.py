from fastapi import Request

from slate.core.config import settings


def external_base_url(request: Request) -> str:
    fwd = request.headers.get("forwarded")
    if fwd:
        proto = host = None
        for part in fwd.split(";"):
            if "=" in part:
                k, v = part.split("=", 1)
                k = k.strip().lower()
                v = v.strip().strip('"')
                if k == "proto":
                    proto = v
                elif k == "host":
                    host = v
        if proto and host:
            return f"{proto}://{host}".rstrip("/")

    proto = request.headers.get("x-forwarded-proto")
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if proto and host:
        return f"{proto}://{host}".rstrip("/")

    return str(request.base_url).rstrip("/")


def build_share_url(request: Request, token: str) -> str:
    """Viewer URL for a share link; the client app serves /shared/<token>."""
    base = settings.CLIENT_URL.rstrip("/") if settings.CLIENT_URL else external_base_url(request)
    return f"{base}/shared/{token}"
