"""Pytest configuration and shared fixtures for the vision targeting tests."""
import logging

import numpy as np
import pytest

from helpers import FRAME_HEIGHT, FRAME_WIDTH, FakeClock, draw_target_frame

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

# Flask's request log is noise during tests
logging.getLogger('werkzeug').setLevel(logging.WARNING)


@pytest.fixture
def target_frame():
    """Frame with a single target pair centered in the view."""
    return draw_target_frame()


@pytest.fixture
def blank_frame():
    """Frame with nothing in it."""
    return np.zeros((FRAME_HEIGHT, FRAME_WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def fake_clock():
    """Manually advanced clock starting at 1000.0."""
    return FakeClock()
