# tests/conftest.py
from __future__ import annotations

import pytest

from cricket_api import cache
from cricket_api.models import Delivery, MatchConfig
from cricket_api.service import ScoringService
from cricket_api.store import InMemoryMatchStore


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_delivery():
    """Factory for canonical deliveries; sequence defaults to the call order."""
    counter = {"n": 0}

    def _make(**overrides) -> Delivery:
        counter["n"] += 1
        fields = dict(
            match_id="m1",
            innings_number=1,
            over_number=0,
            ball_number=1,
            bowler_id="bowler-a",
            striker_id="bat-1",
            non_striker_id="bat-2",
            sequence=counter["n"],
        )
        fields.update(overrides)
        return Delivery(**fields)

    return _make


@pytest.fixture
def service():
    return ScoringService(InMemoryMatchStore(), lock_timeout_seconds=1.0, scorecard_ttl_seconds=30)


@pytest.fixture
def match(service):
    """A 2-over match, team A batting first."""
    return service.create_match(
        "m1",
        "team-a",
        "team-b",
        config=MatchConfig(total_overs=2, max_overs_per_bowler=1, toss_winner_team_id="team-a", toss_decision="bat"),
    )
