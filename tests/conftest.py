import pytest

from tests.fakes import make_station


@pytest.fixture
def station():
    return make_station()
