import argparse
import logging
from pathlib import Path
from typing import List, Optional

from vibecheck.bluesky.client import BlueskyClient
from vibecheck.bot.app import MentionBot, analyze_texts
from vibecheck.config.config_loader import (
    DEFAULT_CONFIG_PATH,
    SentimentConfig,
    load_credentials
)
from vibecheck.derived.responses import PythonRandomSource
from vibecheck.utils.logger import setup_logger
from vibecheck.utils.rate_limiter import RateLimiter

MAX_WORKERS = 16


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vibecheck",
        description="Bluesky bot that replies to mentions with the sentiment of your recent posts"
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help='Sentiment YAML (tables and reply templates)'
    )
    parser.add_argument(
        '--log-dir',
        type=Path,
        default=Path("data/logs/bot"),
        help='Directory for log files (default: data/logs/bot)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log at DEBUG level'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    run = subparsers.add_parser('run', help='Poll for mentions and reply')
    run.add_argument(
        '--interval',
        type=float,
        default=10.0,
        help='Seconds between notification polls (default: 10)'
    )
    run.add_argument(
        '--workers',
        type=int,
        default=4,
        help=f'Mentions analyzed in parallel (1-{MAX_WORKERS}, default: 4)'
    )
    run.add_argument(
        '--max-cycles',
        type=int,
        default=None,
        help='Stop after this many polls (default: run forever)'
    )

    analyze = subparsers.add_parser('analyze', help='Print the reply for a handle without posting')
    analyze.add_argument('handle', help='Bluesky handle, e.g. alice.bsky.social')
    analyze.add_argument('--seed', type=int, default=None, help='Seed for reply variant selection')

    score = subparsers.add_parser('score', help='Score texts offline')
    score.add_argument('texts', nargs='+', help='Post bodies to score')
    score.add_argument('--handle', default='you', help='Handle used in the composed reply')
    score.add_argument('--seed', type=int, default=None, help='Seed for reply variant selection')

    return parser


def _login(logger: logging.Logger) -> BlueskyClient:
    credentials = load_credentials()
    client = BlueskyClient(
        service=credentials.service,
        rate_limiter=RateLimiter(max_rate=5.0),
        logger=logger
    )
    client.login(credentials.username, credentials.password)
    return client


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the `vibecheck` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = setup_logger(
        name="vibecheck",
        log_dir=args.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console_output=True
    )

    config = SentimentConfig(config_path=args.config)

    if args.command == 'score':
        composer = config.build_composer(random_source=PythonRandomSource(args.seed))
        result = analyze_texts(args.handle, args.texts, config, composer=composer)
        print(f"score: {result.score:.4f}")
        print(f"category: {result.category}")
        print(result.reply)
        return 0

    if args.command == 'run' and not 1 <= args.workers <= MAX_WORKERS:
        parser.error(f"--workers must be between 1 and {MAX_WORKERS}")

    client = _login(logger)
    try:
        if args.command == 'analyze':
            composer = config.build_composer(random_source=PythonRandomSource(args.seed))
            bot = MentionBot(client, config, composer=composer, logger=logger)
            result = bot.analyze(args.handle)
            print(f"score: {result.score:.4f} over {result.post_count} posts")
            print(f"category: {result.category}")
            print(result.reply)
            return 0

        bot = MentionBot(client, config, max_workers=args.workers, logger=logger)
        try:
            stats = bot.run(interval=args.interval, max_cycles=args.max_cycles)
        except KeyboardInterrupt:
            stats = bot.stats()
            logger.info("Interrupted")
        logger.info(f"Stopped: {stats}")
        return 0
    finally:
        client.close()


if __name__ == '__main__':
    raise SystemExit(main())
