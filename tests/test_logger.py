"""
Tests for log level resolution.
"""

import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.shared.logger import get_logger, resolve_level


class TestResolveLevel:
    @pytest.mark.parametrize(
        "level, expected",
        [
            ("debug", logging.DEBUG),
            (" WARNING ", logging.WARNING),
            (logging.ERROR, logging.ERROR),
            ("verbose", logging.INFO),
            (None, logging.INFO),
        ],
    )
    def test_names_and_numbers(self, level, expected):
        assert resolve_level(level) == expected

    def test_module_logger(self):
        assert get_logger("api.flow.store").name == "api.flow.store"
