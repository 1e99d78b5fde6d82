"""Shared test fixtures for the supabase_migrator test suite."""

import pytest
import yaml


@pytest.fixture()
def sample_config_dict():
    """Return a raw config mapping with two projects."""
    return {
        "projects": {
            "production": {
                "project_ref": "prodref",
                "db_password": "p@ss word",
                "service_key": "service-prod",
                "access_token": "sbp_prod",
            },
            "staging": {
                "project_ref": "stagingref",
                "db_password": "secret",
                "service_key": "service-staging",
            },
            "dbonly": {
                "project_ref": "dbonlyref",
                "db_password": "secret",
            },
        },
        "defaults": {
            "parallel_transfers": 8,
            "compress_backups": False,
            "excluded_schemas": ["extensions", "realtime"],
        },
    }


@pytest.fixture()
def config_file(tmp_path, sample_config_dict):
    """Write ``sample_config_dict`` to a YAML file and return its path."""
    path = tmp_path / "supabase-migrator.yaml"
    path.write_text(yaml.safe_dump(sample_config_dict))
    return path
