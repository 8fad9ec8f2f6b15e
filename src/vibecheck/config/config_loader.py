"""
Sentiment Configuration Loader
Loads the category table, emoji table and response templates from YAML,
and the Bluesky credentials from the environment (.env supported).

Tables and templates are read once and kept read-only for the process.
"""
import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

from vibecheck.derived.categories import ConfigError, ThresholdTable, build_table
from vibecheck.derived.responses import RandomSource, ResponseComposer, ResponseTemplate

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "sentiment.yaml"
CLASSIC_CONFIG_PATH = CONFIG_DIR / "classic.yaml"
DEFAULT_SERVICE = "https://bsky.social"
DEFAULT_POST_LIMIT = 100


class SentimentConfig:

    def __init__(self, config_path: str | Path = DEFAULT_CONFIG_PATH):
        """
        Initialize the config loader.

        :param config_path: Path to a sentiment YAML file
        """
        self.config_path = Path(config_path)
        self._config = None
        self._category_table = None
        self._emoji_table = None
        self._templates = None

    def load(self):
        """Load configuration from YAML"""
        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f)
        if not isinstance(self._config, dict):
            raise ConfigError(f"{self.config_path}: expected a mapping at top level")

    def _section(self, key: str) -> Any:
        if self._config is None:
            self.load()
        if key not in self._config:
            raise ConfigError(f"{self.config_path}: missing '{key}' section")
        return self._config[key]

    @property
    def post_limit(self) -> int:
        """Number of recent posts to analyze"""
        if self._config is None:
            self.load()
        return int(self._config.get('post_limit', DEFAULT_POST_LIMIT))

    @property
    def category_table(self) -> ThresholdTable:
        """Get the category threshold table"""
        if self._category_table is None:
            self._category_table = build_table(
                self._section('categories'),
                value_key='label',
                neutral=self._config.get('neutral'),
                name='categories'
            )
        return self._category_table

    @property
    def emoji_table(self) -> ThresholdTable:
        """Get the emoji threshold table"""
        if self._emoji_table is None:
            self._emoji_table = build_table(
                self._section('emoji'),
                value_key='emoji',
                neutral=self._config.get('emoji_neutral'),
                name='emoji'
            )
        return self._emoji_table

    @property
    def templates(self) -> Dict[str, ResponseTemplate]:
        """Get response templates keyed by category label"""
        if self._templates is None:
            responses = self._section('responses')
            if not isinstance(responses, dict):
                raise ConfigError(f"{self.config_path}: 'responses' must be a mapping")
            self._templates = {
                str(label): ResponseTemplate.from_dict(str(label), data)
                for label, data in responses.items()
            }
        return self._templates

    def build_composer(self, random_source: Optional[RandomSource] = None) -> ResponseComposer:
        """
        Build a ResponseComposer from this config.

        :raises ConfigError: when a category lacks templates
        """
        return ResponseComposer(
            category_table=self.category_table,
            emoji_table=self.emoji_table,
            templates=self.templates,
            random_source=random_source
        )


@dataclass(frozen=True)
class BotCredentials:
    """Bluesky login for the bot account."""

    username: str
    password: str
    service: str = DEFAULT_SERVICE


def load_credentials(env_file: Optional[str | Path] = None) -> BotCredentials:
    """
    Read BLUESKY_USERNAME / BLUESKY_PASSWORD / BLUESKY_SERVICE.

    :param env_file: Optional .env path (default: search from cwd)
    :raises ConfigError: username or password missing
    """
    load_dotenv(env_file)

    username = os.getenv('BLUESKY_USERNAME')
    password = os.getenv('BLUESKY_PASSWORD')
    if not username or not password:
        raise ConfigError("BLUESKY_USERNAME and BLUESKY_PASSWORD must be set")

    return BotCredentials(
        username=username,
        password=password,
        service=os.getenv('BLUESKY_SERVICE', DEFAULT_SERVICE).rstrip('/')
    )
