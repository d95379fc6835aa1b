"""
HTTP log client.

- Sends the known tree size as JSON
- Expects the latest root and a consistency proof as JSON
- Used by AuditLoop as its LogFetcher
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional

import requests

from logaudit.protocol.errors import FetchError
from logaudit.protocol.models import ConsistencyProof, FetchResult, LogRoot
from logaudit.transport.base import LogFetcher
from logaudit.transport.codec import decode_log_root

logger = logging.getLogger(__name__)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


class HTTPLogClient(LogFetcher):
    """
    Fetches the latest root from a log service over HTTP.
    The service must accept POST /latest-root with a JSON body:

        { "lastTreeSize": 42 }

    And return either a structured root:

        { "root": { "treeSize": ..., "rootHash": "<b64>", "revision": ... },
          "proof": { "hashes": ["<b64>", ...] } }

    or a serialized LogRootV1:

        { "logRoot": "<b64 LogRootV1 bytes>", "proof": { "hashes": [...] } }
    """

    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 1.0,
        fetch_timeout: float = 2.0,
        session: Optional[requests.Session] = None,
    ):
        self._url = base_url.rstrip("/") + "/latest-root"
        self._connect_timeout = connect_timeout
        self._fetch_timeout = fetch_timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return self._url

    # ------------------------------------------------------------------
    # LogFetcher API
    # ------------------------------------------------------------------
    def fetch_latest(self, known_tree_size: int, timeout: Optional[float] = None) -> FetchResult:
        body = {"lastTreeSize": known_tree_size}
        read_timeout = timeout if timeout is not None else self._fetch_timeout

        try:
            response = self._session.post(
                self._url,
                data=_json_dumps(body),
                headers={"Content-Type": "application/json"},
                timeout=(self._connect_timeout, read_timeout),
            )
            response.raise_for_status()
            decoded = response.json()
        except requests.Timeout as e:
            raise FetchError(f"timed out fetching latest root from {self._url}: {e}") from e
        except requests.RequestException as e:
            raise FetchError(f"failed to fetch latest root from {self._url}: {e}") from e
        except ValueError as e:
            raise FetchError(f"invalid JSON from {self._url}: {e}") from e

        if not isinstance(decoded, dict):
            raise FetchError(f"expected JSON object from {self._url}, got {type(decoded).__name__}")

        return self._decode_fetch_result(decoded)

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Convert JSON → FetchResult
    # ------------------------------------------------------------------
    def _decode_fetch_result(self, data: Dict[str, Any]) -> FetchResult:
        try:
            if "logRoot" in data:
                root = decode_log_root(base64.b64decode(data["logRoot"], validate=True))
            elif "root" in data:
                root = LogRoot.from_dict(data["root"])
            else:
                raise FetchError("response carries neither 'root' nor 'logRoot'")

            proof = ConsistencyProof.from_dict(data.get("proof") or {})
        except FetchError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise FetchError(f"malformed latest-root response: {e}") from e

        logger.debug(
            "Fetched root size=%d revision=%d with %d proof hashes",
            root.tree_size,
            root.revision,
            len(proof),
        )
        return FetchResult(root=root, proof=proof)
