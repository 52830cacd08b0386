"""
Voice file download.

Plain urllib in a worker thread, as with the other media fetches in this
codebase. The timeout and size cap are explicit; nothing is inherited from
library defaults.
"""

from __future__ import annotations

import asyncio
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from src.voice_relay.errors import DownloadError
from src.voice_relay.infra.http_ssl import create_ssl_context


def _download_blocking(url: str, *, timeout_s: float, max_bytes: int) -> bytes:
    ssl_ctx = create_ssl_context() if url.startswith("https://") else None
    try:
        req = Request(url, method="GET")
        with urlopen(req, timeout=timeout_s, context=ssl_ctx) as resp:
            # Read one byte past the cap to detect oversize bodies.
            data = resp.read(max_bytes + 1)
    except HTTPError as exc:
        raise DownloadError(f"Voice download failed with HTTP {exc.code}") from exc
    except (URLError, OSError) as exc:
        # URLError wraps DNS/connection failures; timeouts surface as OSError.
        raise DownloadError(f"Voice download failed: {exc}") from exc
    except HTTPException as exc:
        # Connection dropped mid-body (IncompleteRead) or a garbled status line.
        raise DownloadError(f"Voice download interrupted: {exc!r}") from exc
    except ValueError as exc:
        raise DownloadError(f"Invalid voice download URL: {exc}") from exc

    if len(data) > max_bytes:
        raise DownloadError(f"Voice file exceeds {max_bytes} bytes")
    return data


async def download_voice(url: str, *, timeout_s: float, max_bytes: int) -> bytes:
    """
    Fetch the raw bytes at `url`.

    Raises DownloadError on HTTP errors, network errors, timeouts, or when the
    body is larger than `max_bytes`.
    """
    return await asyncio.to_thread(_download_blocking, url, timeout_s=timeout_s, max_bytes=max_bytes)
