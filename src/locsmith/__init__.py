"""Primary public API for locsmith."""

from __future__ import annotations

from locsmith.core.config import LocsmithConfig, load_config
from locsmith.core.exceptions import (
    ConfigError,
    DataIntegrityError,
    LocsmithError,
    PipelineError,
)
from locsmith.core.hashing import LocId, hash_identity, identifier_to_hash, sanitize_loc_id
from locsmith.core.resolution import (
    LocStatus,
    Resolution,
    TableCache,
    get_table_cache,
    resolve,
    resolve_identity,
)
from locsmith.pipeline import LocalisationImport, StepResult
from locsmith.version import get_version


__version__ = get_version()


__all__ = [
    "ConfigError",
    "DataIntegrityError",
    "LocId",
    "LocStatus",
    "LocalisationImport",
    "LocsmithConfig",
    "LocsmithError",
    "PipelineError",
    "Resolution",
    "StepResult",
    "TableCache",
    "__version__",
    "get_table_cache",
    "get_version",
    "hash_identity",
    "identifier_to_hash",
    "load_config",
    "resolve",
    "resolve_identity",
    "sanitize_loc_id",
]
