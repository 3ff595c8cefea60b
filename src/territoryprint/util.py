"""Logging setup, print manifests, and filesystem helpers."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Iterable


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOGGER_NAME = "territoryprint"
MANIFEST_SUFFIX = ".manifest.json"


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> logging.Logger:
    """Attach console and optional file handlers to the `territoryprint` logger.

    Handlers from an earlier call are closed and replaced, so repeated runs in one
    process do not duplicate output. The root logger is left alone and records
    still propagate to it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger


def ensure_directories(paths: Iterable[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def manifest_path_for(document_path: Path) -> Path:
    """`cards.pdf` -> `cards.manifest.json`, next to the document."""
    return document_path.with_suffix(MANIFEST_SUFFIX)


def write_manifest(document_path: Path, payload: dict[str, Any]) -> Path:
    path = manifest_path_for(document_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, sort_keys=True, ensure_ascii=False)
        fh.write("\n")
    return path


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()
