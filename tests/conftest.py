import pytest

from tests.fakes import FakeTelegram


@pytest.fixture
def fake_telegram() -> FakeTelegram:
    return FakeTelegram()
