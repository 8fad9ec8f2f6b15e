"""
Pytest configuration and shared fixtures
"""
import math
import pytest
import sys
from pathlib import Path

# Add src to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from vibecheck.derived.categories import ThresholdTable  # noqa: E402
from vibecheck.models.lexicon import LexiconModel  # noqa: E402


@pytest.fixture
def sample_handle():
    """Provide a sample handle for testing"""
    return "alice.bsky.social"


@pytest.fixture
def sample_lexicon():
    """Small fixed lexicon so scores are exact"""
    return {
        "love": 3.0,
        "great": 3.0,
        "good": 2.0,
        "happy": 3.0,
        "bad": -3.0,
        "hate": -3.0,
        "awful": -3.0,
        "sad": -2.0,
    }


@pytest.fixture
def sample_negators():
    """Negation words matching the fixture lexicon"""
    return {"not", "don't", "never"}


@pytest.fixture
def lexicon_model(sample_lexicon, sample_negators):
    """LexiconModel that never touches vaderSentiment"""
    return LexiconModel(lexicon=sample_lexicon, negators=sample_negators)


@pytest.fixture
def mean_nice_table():
    """Five-band table with the -0.25 / -0.1 / 0.1 cut points"""
    return ThresholdTable(
        [(-0.25, "mean"), (-0.1, "neutral"), (0.1, "nice"), (math.inf, "very nice")],
        neutral="neutral",
        name="mean_nice"
    )


@pytest.fixture
def nine_way_table():
    """Nine-band category table"""
    return ThresholdTable(
        [
            (-3, "extremely negative"),
            (-1.5, "very negative"),
            (-0.5, "negative"),
            (-0.1, "slightly negative"),
            (0.1, "neutral"),
            (0.5, "slightly positive"),
            (1.5, "positive"),
            (3, "very positive"),
            (math.inf, "extremely positive"),
        ],
        neutral="neutral",
        name="nine_way"
    )


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (slower)"
    )
    config.addinivalue_line(
        "markers", "external: mark test as requiring external API access"
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-apply markers based on test file location.

    Convention:
      - tests/unit/**         => @pytest.mark.unit
      - tests/integration/**  => @pytest.mark.integration
    """
    root = Path(str(config.rootpath)).resolve()

    unit_dir = (root / "tests" / "unit").resolve()
    integration_dir = (root / "tests" / "integration").resolve()

    for item in items:
        p = Path(str(item.fspath)).resolve()

        if unit_dir in p.parents:
            item.add_marker(pytest.mark.unit)

        if integration_dir in p.parents:
            item.add_marker(pytest.mark.integration)
