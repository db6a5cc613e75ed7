import random

import pytest

from badcards.config import Config
from badcards.extensions import MANAGER_KEY
from badcards.game.models import PromptCard
from badcards.game.service import GameManager
from badcards.server import create_app


SINGLE_BLANK_PROMPTS = (
    PromptCard("t1", "Nothing says party like ______.", 1),
    PromptCard("t2", "My therapist says I should stop ______.", 1),
    PromptCard("t3", "Tonight's special: ______.", 1),
)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    ADMIN_TOKEN = "test-admin"
    ROUND_DURATION_SEC = 45
    JUDGE_DURATION_SEC = 60
    TIMER_TICK_SEC = 1


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


class FakeRunner:
    """Records background tasks instead of spawning them; sleeping advances the clock."""

    def __init__(self, clock):
        self.clock = clock
        self.tasks = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds=0):
        self.clock.advance(seconds)

    def run_next(self):
        target, args, kwargs = self.tasks.pop(0)
        return target(*args, **kwargs)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def manager(clock):
    m = GameManager(
        config=TestConfig,
        clock=clock,
        rng=random.Random(1234),
        prompt_cards=SINGLE_BLANK_PROMPTS,
    )
    yield m
    m.shutdown()


@pytest.fixture()
def runner(clock):
    return FakeRunner(clock)


@pytest.fixture()
def timed_manager(clock, runner):
    m = GameManager(
        config=TestConfig,
        runner=runner,
        clock=clock,
        rng=random.Random(99),
        prompt_cards=SINGLE_BLANK_PROMPTS,
    )
    yield m
    m.shutdown()


@pytest.fixture()
def seat(manager):
    """Create a room hosted by the first name and join the rest.

    Returns ``(room, ids)`` where ``ids`` maps each name to its player id.
    """

    def _seat(*names, max_players=8, max_score=7, start=False):
        room, host_id = manager.create_room("R", names[0], max_players=max_players, max_score=max_score)
        ids = {names[0]: host_id}
        for name in names[1:]:
            _, player_id = manager.join_room(room.id, name)
            ids[name] = player_id
        if start:
            manager.start_game(room.id, host_id)
        return room, ids

    return _seat


@pytest.fixture()
def app_and_socketio():
    app, socketio = create_app(TestConfig)
    yield app, socketio
    app.extensions[MANAGER_KEY].shutdown()


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def app_manager(flask_app):
    return flask_app.extensions[MANAGER_KEY]
