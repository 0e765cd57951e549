"""Unit tests for main.py -- the create-user bootstrap command."""

import io

import main
from auth.passwords import verify_password


def test_create_user_hashes_and_stores(user_store, capsys):
    user_id = main.create_user(user_store, "admin", "admin@example.com", "s3cret")
    assert user_id is not None
    stored = user_store.find_by_username("admin")
    assert stored.id == user_id
    assert stored.password_hash != "s3cret"
    assert verify_password("s3cret", stored.password_hash)
    assert "s3cret" not in capsys.readouterr().out


def test_create_user_duplicate_returns_none(user_store, capsys):
    main.create_user(user_store, "admin", None, "one")
    assert main.create_user(user_store, "admin", None, "two") is None
    assert "already exists" in capsys.readouterr().out


def test_create_user_command_reads_password_from_stdin(user_store, monkeypatch):
    monkeypatch.setattr(main, "UserStore", lambda db_url: user_store)
    monkeypatch.setattr(user_store, "close", lambda: None)
    monkeypatch.setattr("sys.stdin", io.StringIO("from-stdin\n"))
    rc = main.main(["create-user", "ops", "--email", "ops@example.com", "--password-stdin"])
    assert rc == 0
    assert verify_password("from-stdin", user_store.find_by_username("ops").password_hash)


def test_create_user_command_rejects_empty_password(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
    assert main.main(["create-user", "ops", "--password-stdin"]) == 1


def test_no_command_prints_help(capsys):
    assert main.main([]) == 1
    assert "serve" in capsys.readouterr().out
