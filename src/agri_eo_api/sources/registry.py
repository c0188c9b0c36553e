"""Source registry: which adapters back each category, and in what order."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_SOURCE_REGISTRY_PATH = Path(__file__).resolve().parent / "sources.yaml"

REQUIRED_CHAINS = ("soil_moisture", "vegetation_index", "field_grid_probes")


class SourceConfig(BaseModel):
    """One adapter binding inside a chain."""

    id: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    upstream: Literal["cmr", "appeears", "ornl"]
    options: dict[str, Any] = Field(default_factory=dict)


class SourceRegistryDocument(BaseModel):
    """Top-level sources document."""

    version: str = "1.0"
    chains: dict[str, list[SourceConfig]] = Field(default_factory=dict)

    @field_validator("chains")
    @classmethod
    def _validate_chains(cls, chains: dict[str, list[SourceConfig]]) -> dict[str, list[SourceConfig]]:
        missing = [name for name in REQUIRED_CHAINS if name not in chains]
        if missing:
            raise ValueError(f"Missing source chain(s): {', '.join(missing)}")
        for name, chain in chains.items():
            ids = [source.id for source in chain]
            if len(ids) != len(set(ids)):
                raise ValueError(f"Duplicate source ids in chain '{name}'")
        return chains


def _load_yaml_document(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as file_handle:
        payload = yaml.safe_load(file_handle) or {}
    if not isinstance(payload, dict):
        raise RuntimeError(f"Source registry '{path}' must be a YAML mapping")
    return payload


def clear_source_registry_cache() -> None:
    load_source_registry.cache_clear()


@lru_cache(maxsize=4)
def load_source_registry(path: str | Path | None = None) -> SourceRegistryDocument:
    """Load and validate the sources document (packaged default unless overridden)."""

    resolved_path = Path(path) if path is not None else DEFAULT_SOURCE_REGISTRY_PATH
    if not resolved_path.exists():
        raise RuntimeError(f"Source registry not found: {resolved_path}")
    return SourceRegistryDocument.model_validate(_load_yaml_document(resolved_path))
