import pathlib
import site

import pytest
from recorddao import settings
from recorddao.connection import dispose_all_engines

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def reset_settings():
    """Restore process-wide settings before and after each test to ensure test isolation."""
    settings.reset()
    yield
    settings.reset()
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.entities',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
