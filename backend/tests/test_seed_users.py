"""Tests for the seed script."""

import importlib.util
import json
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "seed_users.py"


@pytest.fixture(name="seed_module")
def seed_module_fixture():
    spec = importlib.util.spec_from_file_location("seed_users", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_seed_replaces_existing_accounts(seed_module, db_session, make_user, repo, hasher):
    make_user(username="leftover")

    created = seed_module.seed(seed_module.DEFAULT_SEED_FILE)

    db_session.expire_all()
    assert created == 4
    assert repo.get_by_username("leftover") is None
    assert repo.get_by_username("dormant").is_active is False
    assert repo.get_by_username("sam").role == "student"

    admin = repo.get_by_email("admin@example.com", with_password=True)
    assert admin.role == "admin"
    assert admin.password_hash != "admin12345"
    assert hasher.verify("admin12345", admin.password_hash)


def test_load_records_rejects_non_list(seed_module, tmp_path):
    path = tmp_path / "users.json"
    path.write_text(json.dumps({"username": "solo"}), encoding="utf-8")
    with pytest.raises(ValueError):
        seed_module.load_records(path)

    with pytest.raises(FileNotFoundError):
        seed_module.load_records(tmp_path / "missing.json")
