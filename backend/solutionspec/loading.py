"""
Snapshot loading helpers.

The validator works on an in-memory snapshot. These helpers are for callers
that need to materialize one: reading a solution file, and loading many
implementation skills concurrently with graceful degradation.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import yaml

from .config import ValidatorConfig
from .models import InvalidSolutionError

logger = logging.getLogger(__name__)


SkillLoader = Callable[[str], Optional[Dict[str, Any]]]


def load_solution_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML or JSON solution snapshot.

    Args:
        path: Path to the solution file.

    Returns:
        The solution document as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidSolutionError: If the file is empty, unparsable or not a mapping.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidSolutionError(f"YAML parse error in {path}: {e}") from e

    if data is None:
        raise InvalidSolutionError(f"File is empty: {path}")
    if not isinstance(data, dict):
        raise InvalidSolutionError(f"Solution file must contain a mapping: {path}")
    return data


def not_found_record(skill_id: str, error: str) -> Dict[str, Any]:
    """Placeholder for a skill that could not be loaded."""
    return {"id": skill_id, "status": "NOT_FOUND", "error": error}


def load_skill_bodies(
    skill_ids: Sequence[str],
    loader: SkillLoader,
    max_workers: Optional[int] = None,
    config: Optional[ValidatorConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Dict[str, Any]]:
    """
    Load implementation skills concurrently.

    A load that raises or returns nothing is logged and replaced with a
    ``NOT_FOUND`` record, so one unreadable skill never prevents validating
    the rest of the solution.

    Args:
        skill_ids: Skill ids to load.
        loader: Callable returning a skill body for an id.
        max_workers: Thread pool size; defaults to ``config.max_workers``.
        config: Optional validator configuration.
        logger: Logger for degraded loads; defaults to this module's logger.

    Returns:
        One record per requested id, in request order.
    """
    log = logger or logging.getLogger(__name__)
    if not skill_ids:
        return []

    def load_one(skill_id: str) -> Dict[str, Any]:
        try:
            body = loader(skill_id)
        except Exception as e:
            log.warning("Failed to load skill %s: %s", skill_id, e)
            return not_found_record(skill_id, str(e) or type(e).__name__)
        if not body:
            log.warning("Skill %s not found", skill_id)
            return not_found_record(skill_id, "skill not loaded")
        return body

    if max_workers is None:
        max_workers = (config or ValidatorConfig()).max_workers
    workers = max(1, min(max_workers, len(skill_ids)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order regardless of completion order
        return list(pool.map(load_one, skill_ids))
