from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from http.client import HTTPException
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import InvokeError

logger = logging.getLogger(__name__)

_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": "jsonrpc-fsproxy/0.1",
}


@dataclass
class RemoteInvoker:
    """
    Sends one line as the body of a POST to `rpc_url`.

    Anything but a 200 with a fully read body raises InvokeError; callers
    treat that as a per-line failure. No retries.
    """
    rpc_url: str
    timeout: Optional[float] = None

    def invoke(self, line: str) -> bytes:
        req = Request(self.rpc_url, data=line.encode("utf-8"), headers=dict(_HEADERS), method="POST")

        t0 = time.time()
        try:
            kwargs = {} if self.timeout is None else {"timeout": self.timeout}
            with urlopen(req, **kwargs) as resp:
                status = resp.status
                if status != 200:
                    raise InvokeError(f"response status code not OK: {status}", status=status)
                body = resp.read()
        except HTTPError as e:
            e.close()
            raise InvokeError(f"response status code not OK: {e.code}", status=e.code) from e
        except URLError as e:
            raise InvokeError(f"send request: {e.reason}") from e
        except (OSError, HTTPException) as e:
            # resets, timeouts and short reads while reading the body
            raise InvokeError(f"read response body: {e}") from e

        logger.debug("POST %s -> %d bytes in %d ms", self.rpc_url, len(body), int((time.time() - t0) * 1000))
        return body
