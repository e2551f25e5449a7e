"""Shared fixtures for the asset cleanup tests"""

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the defaults config file at a temporary directory"""
    config_dir = tmp_path / "config"
    monkeypatch.setattr("managers.defaults_manager.CONFIG_DIR", config_dir)
    monkeypatch.setattr("managers.defaults_manager.CONFIG_FILE", config_dir / "config.json")
    return config_dir / "config.json"


def make_asset(asset_id, display_name=None, src=None, **extra):
    """Build a raw store value the way the ingestion pipeline writes it"""
    value = {"id": asset_id}
    if display_name is not None:
        value["displayName"] = display_name
    if src is not None:
        value["src"] = src
    value.update(extra)
    return value


HERO_SRC = "https://dish.scene7.com/is/image/dishenterprise/hero.jpg"
