"""
Shared pytest fixtures for voido tests.

This module provides common fixtures used across all test files, including:
- An isolated VOIDO_HOME per test
- Time freezing utilities
- Database and controller fixtures
- Test data factories
"""

import pytest
from freezegun import freeze_time

from voido.voido_env import VoidoEnvironment
from voido.controller import Controller
from voido.model import DatabaseManager
from voido.item import make_task


@pytest.fixture(autouse=True)
def voido_home(tmp_path, monkeypatch):
    """
    Every test gets its own workspace so logs and config never land in the
    real home directory. A wide COLUMNS keeps rich from wrapping tables.
    """
    home = tmp_path / "voido_home"
    monkeypatch.setenv("VOIDO_HOME", str(home))
    monkeypatch.setenv("COLUMNS", "200")
    return home


@pytest.fixture
def frozen_time():
    """
    Freezes time to 2025-01-01 12:00:00 for the duration of the test.

    Usage:
        def test_something(frozen_time):
            frozen_time.tick(delta=timedelta(days=1))
    """
    with freeze_time("2025-01-01 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def test_env(voido_home):
    """
    Provides a VoidoEnvironment rooted at the per-test home, with its
    config file written.
    """
    env = VoidoEnvironment(voido_home)
    env.ensure(init_config=True)
    return env


@pytest.fixture
def temp_db_path(tmp_path):
    """
    Provides a temporary database path that will be cleaned up after the test.
    """
    return tmp_path / "test_todos.db"


@pytest.fixture
def db_manager(temp_db_path):
    dbm = DatabaseManager(temp_db_path, reset=True)
    yield dbm
    dbm.close()


@pytest.fixture
def test_controller(temp_db_path, test_env):
    """
    Provides a Controller with a fresh test database.
    """
    ctrl = Controller(temp_db_path, test_env, reset=True)
    yield ctrl
    ctrl.db_manager.close()


@pytest.fixture
def sample_tasks():
    """
    Keyword arguments for make_task, one dict per task. Inserted in this
    order they get ids 1..4.
    """
    return [
        dict(
            title="Write the report",
            topic="work",
            priority="high",
            owner="alice",
            subtasks=["outline", "draft"],
        ),
        dict(title="buy groceries", topic="home", priority="low"),
        dict(title="Call the plumber", topic="Home", due="2025-01-10"),
        dict(title="Plan vacation", topic="personal", priority="medium"),
    ]


@pytest.fixture
def task_factory():
    """
    Returns make_task, so tests read as `task_factory("title", priority="low")`.
    """
    return make_task


@pytest.fixture
def populated_controller(test_controller, sample_tasks, frozen_time):
    """
    Provides a Controller whose database holds the sample tasks.
    """
    for kwargs in sample_tasks:
        test_controller.add_task(make_task(**kwargs))
    test_controller.cursor.reset(len(test_controller.filtered_indices))
    return test_controller


@pytest.fixture
def press():
    """
    Returns a helper that feeds a sequence of keys to a controller.

    Usage:
        press(ctrl, "i", "m", "i", "l", "k", "enter")
    """

    def _press(ctrl, *keys):
        for key in keys:
            ctrl.handle_key(key)

    return _press
