from pathlib import Path

import pytest

from helpers import build_colonies, make_record

SAMPLE_PATH = Path(__file__).resolve().parent / "data" / "sample_coral_webapp.json"


@pytest.fixture
def sample_path():
    return SAMPLE_PATH


@pytest.fixture
def por_population():
    # Three Porites alive in 2020, plus colonies that must not be counted.
    records = [
        make_record(coral_id=10, year=2020, genus="Por"),
        make_record(coral_id=11, year=2019, genus="Por"),
        make_record(coral_id=11, year=2020, genus="Por"),
        make_record(coral_id=12, year=2020, genus="Porites"),
        make_record(coral_id=13, year=2020, genus="Por", diam1=None, diam2=None, height=None, died=True),
        make_record(coral_id=14, year=2020, genus="Poc"),
        make_record(coral_id=15, year=2021, genus="Por"),
    ]
    return build_colonies(records)
