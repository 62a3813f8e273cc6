"""Entry point: assess one token and print the checklist and score as JSON.

    python -m tokenshield.main 0xTOKEN --chain base
"""

import argparse
import asyncio
import signal
import sys

from loguru import logger

from config.settings import settings, validate_settings
from tokenshield.chains import ChainRegistry
from tokenshield.exceptions import ConfigurationError
from tokenshield.models import Chain, TokenAssessment
from tokenshield.parsers.checklist import TokenAuditor
from tokenshield.utils.logger import setup_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tokenshield", description="ERC-20 token legitimacy assessment")
    parser.add_argument("token_address")
    parser.add_argument("--chain", default="mainnet", help="mainnet | base")
    parser.add_argument("--rules-only", action="store_true", help="skip AI scoring, use the rule table")
    return parser.parse_args(argv)


async def run(token_address: str, chain: Chain, *, rules_only: bool = False) -> TokenAssessment | None:
    registry = ChainRegistry.from_settings(settings)
    auditor = TokenAuditor.from_settings(settings, registry)

    # Graceful shutdown on SIGINT/SIGTERM: cancelling tears the fork down
    loop = asyncio.get_running_loop()
    assess_task = asyncio.create_task(
        auditor.assess(token_address, chain, use_ai=False if rules_only else None)
    )
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, assess_task.cancel)

    try:
        return await assess_task
    except asyncio.CancelledError:
        logger.info("Assessment cancelled")
        return None
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await auditor.close()
        await registry.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logger(json_logs=settings.json_logs, level=settings.log_level, log_dir=settings.log_dir)

    try:
        chain = Chain.from_name(args.chain)
        validate_settings(settings, [int(chain)])
    except (ValueError, ConfigurationError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    assessment = asyncio.run(run(args.token_address, chain, rules_only=args.rules_only))
    if assessment is None:
        return 130
    print(assessment.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
