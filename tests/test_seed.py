"""Tests for startup seeding."""

import logging

from doge.domain.models import User
from doge.services.seed import seed_users
from tests.conftest import InMemoryUserRepository


def test_seed_users_saves_demo_users() -> None:
    repository = InMemoryUserRepository()

    users = seed_users(repository)

    assert User(id="philwebb", name="Phil Webb") in users
    assert User(id="joshlong", name="Josh Long") in users


def test_seed_users_is_idempotent() -> None:
    repository = InMemoryUserRepository()
    repository.save(User(id="starbuxman", name="Josh"))

    seed_users(repository)
    users = seed_users(repository)

    assert len(users) == 3


def test_seed_users_logs_each_user(caplog, monkeypatch) -> None:
    monkeypatch.setattr(logging.getLogger("doge"), "propagate", True)

    with caplog.at_level(logging.INFO, logger="doge.services.seed"):
        seed_users(InMemoryUserRepository())

    assert "philwebb" in caplog.text
    assert "Josh Long" in caplog.text
