from __future__ import annotations

import hashlib
from collections.abc import Sequence
from pathlib import Path

from openmods.manifest.common import HashEntry

_CHUNK_SIZE = 1024 * 1024


def hash_file_sha256(path: Path) -> HashEntry:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return HashEntry(algorithm="sha256", value=digest.hexdigest())


def aggregate_root_hash(hashes: Sequence[HashEntry]) -> HashEntry | None:
    """SHA-256 over the concatenated hex values, in artifact order."""
    if not hashes:
        return None
    joined = "".join(h.value for h in hashes)
    return HashEntry(algorithm="sha256", value=hashlib.sha256(joined.encode("utf-8")).hexdigest())
