import random

import pytest

from tilecanvas.core.engine import TileGridEngine
from tilecanvas.core.logging import set_console_enabled, set_logging_enabled

from helpers import FakeClock, PATH_SOURCES


@pytest.fixture(autouse=True)
def quiet_logging():
    set_console_enabled(False)
    set_logging_enabled(False)
    yield
    set_console_enabled(True)
    set_logging_enabled(True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_engine(clock):
    """Factory for a seeded engine on a fixed rows x columns grid"""
    def factory(source_names=PATH_SOURCES, rows=4, columns=4, seed=1234, **kwargs):
        return TileGridEngine(
            source_names=source_names,
            available_width=columns * 40,
            available_height=rows * 40,
            fixed_rows=rows,
            fixed_columns=columns,
            rng=random.Random(seed),
            clock=clock,
            **kwargs,
        )
    return factory
