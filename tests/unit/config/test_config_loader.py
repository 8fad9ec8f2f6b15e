"""
Unit tests for config.config_loader module
Tests sentiment tables/templates from YAML and credentials from the environment
"""
import math
import pytest
import yaml
from pathlib import Path
from unittest.mock import patch

from vibecheck.config.config_loader import (
    CLASSIC_CONFIG_PATH,
    DEFAULT_CONFIG_PATH,
    BotCredentials,
    SentimentConfig,
    load_credentials
)
from vibecheck.derived.categories import ConfigError, classify
from vibecheck.derived.responses import ResponseComposer, SequenceRandomSource


NINE_LABELS = [
    "extremely negative", "very negative", "negative", "slightly negative", "neutral",
    "slightly positive", "positive", "very positive", "extremely positive",
]


class TestSentimentConfig:
    """Test SentimentConfig class"""

    @pytest.fixture
    def sample_config_data(self):
        return {
            'post_limit': 25,
            'neutral': 'meh',
            'categories': [
                {'bound': -0.1, 'label': 'sad'},
                {'bound': 0.1, 'label': 'meh'},
                {'label': 'glad'},
            ],
            'emoji': [
                {'bound': -0.1, 'emoji': '🙁'},
                {'bound': 0.1, 'emoji': '😐'},
                {'bound': float('inf'), 'emoji': '🙂'},
            ],
            'responses': {
                'sad': {'messages': ['Cheer up!'], 'suggestions': 'Go outside.'},
                'meh': {'messages': 'Steady.', 'suggestions': ['Fine.'], 'detail': '{score} / {post_count}'},
                'glad': {'messages': ['Yay!', 'Nice!'], 'suggestions': ['More!']},
            },
        }

    @pytest.fixture
    def sample_config_file(self, tmp_path, sample_config_data):
        """Write a temporary config file for testing"""
        path = tmp_path / "sentiment.yaml"
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(sample_config_data, f, allow_unicode=True)
        return path

    def test_initialization_with_custom_path(self, sample_config_file):
        """Test initialization with custom config path"""
        config = SentimentConfig(config_path=str(sample_config_file))
        assert config.config_path == sample_config_file
        assert config._config is None  # Not loaded yet

    def test_initialization_with_default_path(self):
        config = SentimentConfig()
        assert config.config_path == DEFAULT_CONFIG_PATH
        assert DEFAULT_CONFIG_PATH.exists()

    def test_lazy_loading(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        assert config._config is None

        _ = config.category_table
        assert config._config is not None

    def test_post_limit(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        assert config.post_limit == 25

    def test_post_limit_default(self, tmp_path):
        path = tmp_path / "minimal.yaml"
        path.write_text("categories: []\n", encoding='utf-8')

        assert SentimentConfig(config_path=path).post_limit == 100

    def test_category_table(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        table = config.category_table

        assert table.labels == ['sad', 'meh', 'glad']
        assert table.neutral == 'meh'
        assert math.isinf(table.bounds[-1])
        assert config.category_table is table  # cached

    def test_emoji_table(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        table = config.emoji_table

        assert table.lookup(0.0) == '😐'
        # no emoji_neutral key: band containing 0
        assert table.neutral == '😐'

    def test_templates(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        templates = config.templates

        assert set(templates) == {'sad', 'meh', 'glad'}
        assert templates['sad'].suggestions == ('Go outside.',)
        assert templates['meh'].detail == '{score} / {post_count}'
        assert templates['glad'].messages == ('Yay!', 'Nice!')

    def test_build_composer(self, sample_config_file):
        config = SentimentConfig(config_path=sample_config_file)
        composer = config.build_composer(random_source=SequenceRandomSource([1]))

        assert isinstance(composer, ResponseComposer)
        assert composer.compose('bob', 0.5, 'glad') == '🙂 Hey @bob! Nice! More!'
        assert composer.compose('bob', 0.0, 'meh', post_count=7) == '😐 Hey @bob! Steady. +0 / 7 Fine.'

    def test_missing_template_for_category(self, tmp_path, sample_config_data):
        del sample_config_data['responses']['glad']
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump(sample_config_data, allow_unicode=True), encoding='utf-8')

        config = SentimentConfig(config_path=path)
        with pytest.raises(ConfigError, match="glad"):
            config.build_composer()

    def test_missing_section(self, tmp_path):
        path = tmp_path / "empty_sections.yaml"
        path.write_text("post_limit: 10\n", encoding='utf-8')

        config = SentimentConfig(config_path=path)
        with pytest.raises(ConfigError, match="categories"):
            _ = config.category_table

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="mapping"):
            SentimentConfig(config_path=path).load()

    def test_responses_not_mapping(self, tmp_path):
        path = tmp_path / "responses.yaml"
        path.write_text("responses: [a, b]\n", encoding='utf-8')

        with pytest.raises(ConfigError, match="responses"):
            _ = SentimentConfig(config_path=path).templates

    def test_missing_file(self, tmp_path):
        config = SentimentConfig(config_path=tmp_path / "nope.yaml")
        with pytest.raises(FileNotFoundError):
            config.load()


class TestPackagedConfigs:
    """The YAML files shipped with the package"""

    def test_default_nine_way_table(self):
        config = SentimentConfig()

        assert config.category_table.labels == NINE_LABELS
        assert config.category_table.neutral == 'neutral'
        assert config.post_limit == 100

    @pytest.mark.parametrize("score,expected", [
        (-3.0, "extremely negative"),
        (-2.0, "very negative"),
        (-0.5, "negative"),
        (-0.3, "slightly negative"),
        (0.0, "neutral"),
        (0.1, "neutral"),
        (0.5, "slightly positive"),
        (1.0, "positive"),
        (3.0, "very positive"),
        (3.01, "extremely positive"),
    ])
    def test_default_classification(self, score, expected):
        assert classify(score, SentimentConfig().category_table) == expected

    @pytest.mark.parametrize("score,expected", [
        (-5.0, "🤬"),
        (-1.0, "😠"),
        (0.0, "😐"),
        (0.5, "😊"),
        (5.0, "🥰"),
    ])
    def test_default_emoji(self, score, expected):
        assert SentimentConfig().emoji_table.lookup(score) == expected

    def test_default_templates_cover_categories(self):
        config = SentimentConfig()
        composer = config.build_composer()

        for label in NINE_LABELS:
            template = config.templates[label]
            assert len(template.messages) >= 2
            assert len(template.suggestions) >= 2
            assert '{score}' in template.detail
        assert composer.category_table is config.category_table

    def test_classic_table(self):
        config = SentimentConfig(config_path=CLASSIC_CONFIG_PATH)
        table = config.category_table

        assert table.labels == ['very mean', 'mean', 'neutral', 'nice', 'very nice']
        assert classify(-0.25, table) == 'very mean'
        assert classify(-0.1, table) == 'mean'
        assert classify(0.0, table) == 'neutral'
        assert classify(0.2, table) == 'nice'
        assert classify(0.3, table) == 'very nice'

    def test_classic_reply_uses_post_count(self):
        config = SentimentConfig(config_path=CLASSIC_CONFIG_PATH)
        composer = config.build_composer()

        reply = composer.compose('alice.bsky.social', 0.0, 'neutral', post_count=42)

        assert reply.startswith('😐 Hey @alice.bsky.social! Your recent 42 posts show a balanced')
        assert reply.endswith('appreciated in online communities.')


class TestLoadCredentials:
    """Test load_credentials function"""

    @pytest.fixture(autouse=True)
    def no_dotenv(self):
        with patch('vibecheck.config.config_loader.load_dotenv') as mock_load:
            yield mock_load

    def test_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv('BLUESKY_USERNAME', 'bot.bsky.social')
        monkeypatch.setenv('BLUESKY_PASSWORD', 'app-pass')
        monkeypatch.delenv('BLUESKY_SERVICE', raising=False)

        credentials = load_credentials()

        assert credentials == BotCredentials('bot.bsky.social', 'app-pass', 'https://bsky.social')

    def test_custom_service_trailing_slash(self, monkeypatch):
        monkeypatch.setenv('BLUESKY_USERNAME', 'bot')
        monkeypatch.setenv('BLUESKY_PASSWORD', 'pw')
        monkeypatch.setenv('BLUESKY_SERVICE', 'https://pds.example.com/')

        assert load_credentials().service == 'https://pds.example.com'

    def test_missing_password(self, monkeypatch):
        monkeypatch.setenv('BLUESKY_USERNAME', 'bot')
        monkeypatch.delenv('BLUESKY_PASSWORD', raising=False)

        with pytest.raises(ConfigError, match="BLUESKY_PASSWORD"):
            load_credentials()

    def test_env_file_passed_to_dotenv(self, monkeypatch, no_dotenv):
        monkeypatch.setenv('BLUESKY_USERNAME', 'bot')
        monkeypatch.setenv('BLUESKY_PASSWORD', 'pw')

        load_credentials(env_file=Path('/tmp/bot.env'))

        no_dotenv.assert_called_once_with(Path('/tmp/bot.env'))
