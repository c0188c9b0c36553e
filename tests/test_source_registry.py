from pathlib import Path

import pytest

from agri_eo_api.sources.registry import clear_source_registry_cache, load_source_registry


def test_default_registry_declares_every_chain() -> None:
    clear_source_registry_cache()
    registry = load_source_registry()

    assert [source.id for source in registry.chains["soil_moisture"]] == ["smap-archive", "smap-recent"]
    assert [source.upstream for source in registry.chains["vegetation_index"]] == ["appeears", "cmr", "ornl"]
    assert {source.kind for source in registry.chains["field_grid_probes"]} == {"cmr_probe"}


def test_registry_rejects_missing_chain(tmp_path: Path) -> None:
    registry_path = tmp_path / "sources.yaml"
    registry_path.write_text(
        "\n".join(
            [
                'version: "1.0"',
                "chains:",
                "  soil_moisture: []",
                "  vegetation_index: []",
            ]
        ),
        encoding="utf-8",
    )

    clear_source_registry_cache()
    with pytest.raises(Exception, match="field_grid_probes"):
        load_source_registry(registry_path)


def test_registry_rejects_duplicate_ids(tmp_path: Path) -> None:
    registry_path = tmp_path / "sources.yaml"
    registry_path.write_text(
        "\n".join(
            [
                "chains:",
                "  soil_moisture:",
                "    - {id: smap, kind: cmr_smap_archive, upstream: cmr}",
                "    - {id: smap, kind: cmr_smap_granule, upstream: cmr}",
                "  vegetation_index: []",
                "  field_grid_probes: []",
            ]
        ),
        encoding="utf-8",
    )

    clear_source_registry_cache()
    with pytest.raises(Exception, match="Duplicate source ids"):
        load_source_registry(registry_path)


def test_registry_rejects_unknown_upstream(tmp_path: Path) -> None:
    registry_path = tmp_path / "sources.yaml"
    registry_path.write_text(
        "\n".join(
            [
                "chains:",
                "  soil_moisture:",
                "    - {id: smap, kind: cmr_smap_archive, upstream: ftp}",
                "  vegetation_index: []",
                "  field_grid_probes: []",
            ]
        ),
        encoding="utf-8",
    )

    clear_source_registry_cache()
    with pytest.raises(Exception):
        load_source_registry(registry_path)


def test_missing_registry_file(tmp_path: Path) -> None:
    clear_source_registry_cache()
    with pytest.raises(RuntimeError, match="not found"):
        load_source_registry(tmp_path / "absent.yaml")
