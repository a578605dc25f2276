"""Shared HTTP transport utilities for the web hosting backend.

This module provides a thin wrapper around ``requests.Session`` so the
transport adapter can share timeout policy and map ``requests`` failures into
``TransportError`` without leaking library exceptions upward.

Dependencies:
    - ``requests`` for network I/O.
    - ``appbox.domain.errors.TransportError`` for typed transport failures.

Call context:
    - Constructed by ``appbox/adapters/transport_http.py``.
    - No retries happen here; retry policy belongs to the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import requests
from requests import exceptions as req_exc

from appbox.domain.errors import TransportError


@dataclass
class HttpConfig:
    """Timeout configuration for hosting requests.

    Attributes:
        connect_timeout_s: Seconds allowed to establish the connection.
        read_timeout_s: Seconds allowed between received bytes.
        chunk_size: Streaming chunk size for downloads in bytes.
    """
    connect_timeout_s: float = 3.0
    read_timeout_s: float = 30.0
    chunk_size: int = 64 * 1024

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout_s, self.read_timeout_s)


class HttpSession:
    """Single-use ``requests`` wrapper owned by one transport session.

    Callers decide how to interpret status codes; only connectivity and
    protocol failures are translated here.
    """

    def __init__(self, cfg: HttpConfig, session: Optional[requests.Session] = None) -> None:
        """Create the wrapper.

        Args:
            cfg: Shared timeout settings.
            session: Optional pre-built session (tests inject fakes).

        Side Effects:
            Creates a persistent ``requests.Session`` object when none is given.
        """
        self.session = session if session is not None else requests.Session()
        self.cfg = cfg

    @staticmethod
    def _headers() -> Dict[str, str]:
        return {"Accept": "*/*", "Cache-Control": "no-cache"}

    def head(self, url: str) -> requests.Response:
        """Send a HEAD request (redirects followed).

        Raises:
            TransportError: On timeout, connection or protocol failure.
        """
        try:
            return self.session.head(
                url,
                headers=self._headers(),
                timeout=self.cfg.timeout,
                allow_redirects=True,
            )
        except (req_exc.Timeout, req_exc.ConnectionError) as exc:
            raise TransportError(
                f"Timeout contacting {url}",
                reason="unreachable",
                hint=str(exc),
                context=f"HEAD {url}",
            ) from exc
        except req_exc.RequestException as exc:
            raise TransportError(
                f"Request failed for {url}",
                reason="io",
                hint=str(exc),
                context=f"HEAD {url}",
            ) from exc

    def get_stream(self, url: str) -> requests.Response:
        """Send a streamed GET request.

        Raises:
            TransportError: On timeout, connection or protocol failure.
        """
        try:
            return self.session.get(
                url,
                headers=self._headers(),
                timeout=self.cfg.timeout,
                stream=True,
            )
        except (req_exc.Timeout, req_exc.ConnectionError) as exc:
            raise TransportError(
                f"Timeout contacting {url}",
                reason="unreachable",
                hint=str(exc),
                context=f"GET {url}",
            ) from exc
        except req_exc.RequestException as exc:
            raise TransportError(
                f"Request failed for {url}",
                reason="io",
                hint=str(exc),
                context=f"GET {url}",
            ) from exc

    def close(self) -> None:
        self.session.close()


__all__ = ["HttpConfig", "HttpSession"]
