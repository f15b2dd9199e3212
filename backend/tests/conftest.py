"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta
from typing import Callable

import pytest

from curriculum_engine.learning_engine.contracts import ProblemRecord
from curriculum_engine.learning_engine.skills.catalog import DEFAULT_REGISTRY, SkillRegistry
from tests.helpers.factories import BASE_TIME, make_history, make_record


@pytest.fixture
def record_factory() -> Callable[..., ProblemRecord]:
    return make_record


@pytest.fixture
def history_factory() -> Callable[..., list[ProblemRecord]]:
    return make_history


@pytest.fixture
def registry() -> SkillRegistry:
    return DEFAULT_REGISTRY


@pytest.fixture
def now() -> datetime:
    return BASE_TIME + timedelta(days=1)
