import pytest

from core.client import Bot
from tests.helpers import BOT_TOKEN, FakeSession


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def bot(session):
    return Bot(BOT_TOKEN, session=session, username="test_bot")
