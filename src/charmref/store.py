"""Client for the charm store HTTP API.

Archives are cached under ``<cache_path>/<quote(str(ref))>.charm``. A cached
file is reused only when its SHA-256 matches the digest reported by the
store; downloads go to a temp file in the cache directory and are moved into
place only after verification, so readers never observe a partial archive.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from charmref.config import DEFAULT_STORE_URL, StoreConfig
from charmref.errors import DigestMismatchError, StoreError
from charmref.reference import UNSET_REVISION, Reference, quote

logger = logging.getLogger("charmref.store")

_BASE_BACKOFF_S = 0.5
_CHUNK_SIZE = 64 * 1024
_USER_AGENT = "charmref/0.1"

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True, slots=True)
class StoreInfo:
    """Store-reported metadata for one charm revision."""

    revision: int
    sha256: str


def _is_retryable(exc: BaseException) -> bool:
    """Return True for transient network errors worth retrying."""
    if isinstance(exc, urllib.error.HTTPError):
        return exc.code >= 500
    if isinstance(exc, (urllib.error.URLError, TimeoutError, ConnectionError)):
        return True
    return False


def file_sha256(path: Path) -> str | None:
    """Return the hex SHA-256 of `path`, or None if it cannot be read."""

    h = hashlib.sha256()
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError:
        return None
    return h.hexdigest()


class CharmStore:
    """Read-only access to a charm store with a local archive cache."""

    def __init__(
        self,
        base_url: str = DEFAULT_STORE_URL,
        cache_path: str | Path | None = None,
        *,
        timeout_s: float = 30.0,
        retries: int = 3,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._cache_path = Path(cache_path) if cache_path is not None else StoreConfig().cache_path
        self._timeout_s = float(timeout_s)
        self._retries = max(0, int(retries))
        self._opener = opener if opener is not None else urllib.request.urlopen
        self._sleep = sleep

    @classmethod
    def from_config(cls, cfg: StoreConfig, **kwargs: Any) -> CharmStore:
        return cls(
            cfg.url,
            cfg.cache_path,
            timeout_s=cfg.timeout_s,
            retries=cfg.retries,
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def cache_path(self) -> Path:
        return self._cache_path

    def archive_path(self, ref: Reference) -> Path:
        """Return the cache file used for `ref` (which should carry a revision)."""

        return self._cache_path / f"{quote(ref.string())}.charm"

    def _open(self, url: str) -> Any:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": _USER_AGENT},
            method="GET",
        )
        return self._opener(req, timeout=self._timeout_s)

    def _with_retries(self, what: str, fn: Callable[[], T]) -> T:
        attempts = self._retries + 1
        for attempt in range(attempts):
            try:
                return fn()
            except Exception as exc:
                if not _is_retryable(exc) or attempt >= attempts - 1:
                    raise
                delay = _BASE_BACKOFF_S * (2**attempt)
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    what,
                    attempt + 1,
                    attempts,
                    delay,
                    exc,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    def _fetch_json(self, url: str) -> Any:
        def once() -> Any:
            with self._open(url) as resp:
                return json.loads(resp.read())

        try:
            return self._with_retries(f"GET {url}", once)
        except urllib.error.HTTPError as e:
            raise StoreError(f"charm store returned HTTP {e.code} for {url}: {e.reason}") from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            raise StoreError(f"cannot reach charm store at {url}: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreError(f"invalid JSON from charm store at {url}: {e}") from e

    def info(self, ref: Reference) -> StoreInfo:
        """Return the revision and SHA-256 digest of the charm referenced by `ref`."""

        key = ref.string()
        url = f"{self._base_url}/charm-info?charms={urllib.parse.quote_plus(key)}"
        data = self._fetch_json(url)

        entry = data.get(key) if isinstance(data, dict) else None
        if not isinstance(entry, dict):
            raise StoreError(f"missing info for charm: {json.dumps(key)}")

        for w in entry.get("warnings") or []:
            logger.warning("info for %s: %s", json.dumps(key), w)

        errors = entry.get("errors") or []
        if errors:
            raise StoreError(f"charm info errors for {json.dumps(key)}: {'; '.join(map(str, errors))}")

        revision = entry.get("revision")
        if not isinstance(revision, int) or isinstance(revision, bool):
            raise StoreError(f"missing revision in info for charm: {json.dumps(key)}")
        sha256 = entry.get("sha256")
        if not isinstance(sha256, str):
            sha256 = ""
        return StoreInfo(revision=revision, sha256=sha256)

    def latest(self, ref: Reference) -> int:
        """Return the latest revision of `ref`, regardless of its own revision."""

        return self.info(ref.with_revision(UNSET_REVISION)).revision

    def get(self, ref: Reference, *, progress: ProgressCallback | None = None) -> Path:
        """Return the path of the verified local archive for `ref`, downloading if needed."""

        self._cache_path.mkdir(parents=True, exist_ok=True)
        info = self.info(ref)
        if ref.revision == UNSET_REVISION:
            ref = ref.with_revision(info.revision)
        elif ref.revision != info.revision:
            raise StoreError(f"bad revision info for {json.dumps(ref.string())}")

        path = self.archive_path(ref)
        if file_sha256(path) == info.sha256:
            logger.debug("cache hit for %s at %s", ref, path)
            return path

        url = f"{self._base_url}/charm/{urllib.parse.quote(ref.path(), safe='')}"
        logger.info("downloading %s from %s", ref, url)
        try:
            self._with_retries(
                f"GET {url}", lambda: self._download(url, path, info.sha256, progress)
            )
        except urllib.error.HTTPError as e:
            raise StoreError(
                f"cannot download {json.dumps(ref.string())}: HTTP {e.code} {e.reason}"
            ) from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            raise StoreError(f"cannot download {json.dumps(ref.string())}: {e}") from e
        return path

    def _download(
        self,
        url: str,
        out_path: Path,
        digest: str,
        progress: ProgressCallback | None,
    ) -> None:
        # Write atomically: temp file in the same directory then os.replace.
        fd, tmp = tempfile.mkstemp(
            dir=str(out_path.parent),
            prefix=".charmref-dl-",
            suffix=".charm",
        )
        try:
            h = hashlib.sha256()
            with os.fdopen(fd, "wb") as f, self._open(url) as resp:
                total = _content_length(resp)
                done = 0
                for chunk in iter(lambda: resp.read(_CHUNK_SIZE), b""):
                    f.write(chunk)
                    h.update(chunk)
                    done += len(chunk)
                    if progress is not None:
                        progress(done, total)
                f.flush()
                os.fsync(f.fileno())
            actual = h.hexdigest()
            if actual != digest:
                raise DigestMismatchError(str(out_path), digest, actual)
            os.replace(tmp, out_path)
        finally:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass


def _content_length(resp: Any) -> int:
    headers = getattr(resp, "headers", None)
    raw = headers.get("Content-Length") if headers is not None else None
    try:
        return max(0, int(raw)) if raw is not None else 0
    except (TypeError, ValueError):
        return 0
