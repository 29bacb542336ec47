"""
Prompt catalogs.

A catalog is the fixed, ordered list of canonical follow-up prompts that the
engine may suggest.  It is immutable for a session; :func:`normalize_catalog`
turns user input into the tuple the pool works from.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Union

from .exceptions import CatalogError

logger = logging.getLogger("microprompts")

__all__ = [
    "DEFAULT_CATALOG",
    "STARTER_PROMPTS",
    "load_catalog",
    "normalize_catalog",
]

DEFAULT_CATALOG: tuple[str, ...] = (
    "CV summary",
    "Research projects",
    "Machine learning work",
    "ISRO internship",
    "Technical skills",
    "Academic background",
    "Publications outputs",
    "Leadership experience",
    "Collaboration skills",
    "Research motivation",
    "Future PhD goals",
    "Optical polarization project",
    "Deep learning system",
    "BRAHMa tool",
    "Data analysis skills",
    "Astrophysics experience",
    "Python programming",
    "MATLAB proficiency",
    "Communication skills",
    "Critical thinking",
    "Scientific computing",
    "Awards and recognitions",
    "JEE Mains percentile",
    "BHU UET rank",
    "IIT JAM rank",
    "Mentorship experience",
    "Research exposure",
    "Stellar observations",
    "Image processing techniques",
    "Motivational background",
)

# Opening chips offered before the first question; not part of the pool.
STARTER_PROMPTS: tuple[str, ...] = (
    "Summarize Rajit's ISRO work",
    "Which projects show ML skills?",
    "Short CV-style bullets",
)


def normalize_catalog(prompts: Iterable[str]) -> tuple[str, ...]:
    """Return *prompts* as a tuple of stripped, unique, non-empty strings.

    Duplicates keep their first position.  Raises :class:`CatalogError` when
    nothing usable is left.
    """
    seen: set[str] = set()
    result: list[str] = []
    duplicates: list[str] = []
    for raw in prompts:
        prompt = str(raw).strip()
        if not prompt:
            continue
        if prompt in seen:
            duplicates.append(prompt)
            continue
        seen.add(prompt)
        result.append(prompt)

    if duplicates:
        logger.warning(
            "[Microprompts Catalog] Dropped %d duplicate prompt(s): %s",
            len(duplicates),
            ", ".join(sorted(set(duplicates))),
        )
    if not result:
        raise CatalogError("Prompt catalog must contain at least one prompt.")
    return tuple(result)


def load_catalog(path: Union[str, Path]) -> tuple[str, ...]:
    """
    Read a catalog from disk.

    ``.json`` files must hold a list of strings.  Anything else is read as
    one prompt per line; blank lines and lines starting with ``#`` are
    skipped.
    """
    catalog_path = Path(path).expanduser()
    try:
        raw = catalog_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Could not read catalog {catalog_path}: {exc}") from exc

    if catalog_path.suffix.lower() == ".json":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Catalog {catalog_path} is not valid JSON: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise CatalogError(f"Catalog {catalog_path} must be a JSON list of strings.")
        return normalize_catalog(data)

    lines = [line for line in raw.splitlines() if not line.lstrip().startswith("#")]
    return normalize_catalog(lines)
