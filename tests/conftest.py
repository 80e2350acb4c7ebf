import datetime
from datetime import UTC

import pytest

from kalasetu.core.models import Role
from kalasetu.data.engine import Engine


class StepClock:
    """Clock that moves forward one second on every reading."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2024, 1, 15, 10, 0, tzinfo=UTC)

    def __call__(self) -> datetime.datetime:
        current = self.now
        self.now += datetime.timedelta(seconds=1)
        return current


@pytest.fixture()
def clock():
    return StepClock()


@pytest.fixture()
def engine(tmp_path, clock):
    return Engine.open(tmp_path / "data.json", clock=clock)


@pytest.fixture()
def people(engine):
    directory = engine.directory
    return {
        "asha": directory.create_identity(
            "asha@example.com",
            "Asha",
            Role.ARTISAN,
            skills=["Weaving", "Natural Dyes"],
        ),
        "ravi": directory.create_identity(
            "ravi@example.com",
            "Ravi",
            Role.MENTOR,
            skills=["Woodworking", "Furniture Design"],
            bio="Thirty years at the lathe.",
        ),
        "meena": directory.create_identity(
            "meena@example.com",
            "Meena",
            Role.ARTISAN,
            skills=["Pottery"],
        ),
    }
