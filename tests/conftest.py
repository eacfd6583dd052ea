from __future__ import annotations

import pytest

from tests.factories import FakeRunner


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
