import json
from pathlib import Path

import pytest

TEST_DATA = Path(__file__).parent / "test_data"


@pytest.fixture
def load_json():
    def load(name):
        return json.loads((TEST_DATA / name).read_text())

    return load


@pytest.fixture
def load_bytes():
    def load(name):
        return (TEST_DATA / name).read_bytes()

    return load
