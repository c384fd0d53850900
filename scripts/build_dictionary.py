#!/usr/bin/env python3
"""
Snapshot Builder for chijimi.

Downloads Sudachi's synonyms.txt, compiles it in strict mode (each
substitution must save at least 20% of the word's tokens) and writes the
JSON snapshot served for fast cold starts. Run at deploy time.

Usage:
    python scripts/build_dictionary.py [--source PATH] [--output PATH] [--any-reduction]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chijimi.build import compile_dictionary
from chijimi.config import STRICT_MIN_REDUCTION, Settings
from chijimi.dictionary import save_snapshot
from chijimi.errors import ChijimiError
from chijimi.source import fetch_source, read_source
from chijimi.tokens import TiktokenCounter

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# ============================================================================
# Paths
# ============================================================================

DEFAULT_OUTPUT = Path(__file__).parent.parent / "static" / "synonym-dict.json"


# ============================================================================
# Main
# ============================================================================

def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Build the chijimi synonym snapshot from Sudachi synonyms.txt"
    )
    parser.add_argument(
        '--source', '-s',
        type=Path,
        help="Local synonyms.txt (downloads when omitted)"
    )
    parser.add_argument(
        '--url', '-u',
        default=settings.source_url,
        help=f"Download URL (default: {settings.source_url})"
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Output snapshot path (default: {DEFAULT_OUTPUT})"
    )
    parser.add_argument(
        '--any-reduction',
        action='store_true',
        help="Accept any token reduction instead of the strict threshold"
    )

    args = parser.parse_args()

    start_time = time.time()
    min_reduction = 0.0 if args.any_reduction else STRICT_MIN_REDUCTION

    try:
        if args.source:
            text = read_source(args.source)
        else:
            text = fetch_source(args.url, timeout=settings.request_timeout)

        counter = TiktokenCounter(settings.encoding)
        compiled = compile_dictionary(text, counter, min_reduction)
        save_snapshot(compiled, args.output)
    except ChijimiError as e:
        logger.error(f"Snapshot build failed: {e}")
        sys.exit(1)

    elapsed = time.time() - start_time
    logger.info(f"Build completed in {elapsed:.1f} seconds")


if __name__ == '__main__':
    main()
