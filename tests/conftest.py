from __future__ import annotations

import pytest

from helpers import FakeTerminal, make_config


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def config(tmp_path):
    return make_config(tmp_path)
