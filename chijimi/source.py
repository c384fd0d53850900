"""
Raw synonym dictionary input.

Sudachi's synonyms.txt is a comma separated file. Each line is one word
in a synonym group:

    000001,1,0,1,0,0,0,(),曖昧,,
    ^group   ^flag        ^surface (field 8)

Lines starting with ``#``, blank lines and lines with fewer than nine
fields are skipped. Parsing is best effort: a bad line never aborts a
build.
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

import requests

from chijimi.errors import SourceFetchError
from chijimi.raw_types import ExpansionFlag, SynonymGroup, WordEntry

logger = logging.getLogger(__name__)


# ============================================================================
# Record Layout
# ============================================================================

MIN_FIELDS = 9
GROUP_ID_FIELD = 0
FLAG_FIELD = 2
SURFACE_FIELD = 8

MIN_GROUP_SIZE = 2


# ============================================================================
# Fetching
# ============================================================================

def fetch_source(url: str, timeout: float = 60.0) -> str:
    """
    Download the raw dictionary text.

    Args:
        url: Location of synonyms.txt
        timeout: Request timeout in seconds

    Returns:
        The decoded text

    Raises:
        SourceFetchError: On connection errors or a non-2xx status
    """
    logger.info(f"Downloading synonym dictionary from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceFetchError(f"Failed to fetch {url}: {e}") from e

    response.encoding = "utf-8"
    text = response.text
    logger.info(f"Dictionary data size: {round(len(text) / 1024)}KB")
    return text


def read_source(path: Union[str, Path]) -> str:
    """Read the raw dictionary text from a local file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SourceFetchError(f"Failed to read {path}: {e}") from e
    logger.info(f"Read {path} ({round(len(text) / 1024)}KB)")
    return text


# ============================================================================
# Parsing
# ============================================================================

def iter_records(text: str) -> Iterator[Tuple[str, WordEntry]]:
    """
    Yield ``(group_id, WordEntry)`` for every valid line of ``text``.

    Order follows the input.
    """
    skipped = 0
    for line in text.split("\n"):
        if not line.strip() or line.startswith("#"):
            continue

        parts = line.split(",")
        if len(parts) < MIN_FIELDS:
            skipped += 1
            continue

        word = parts[SURFACE_FIELD].strip()
        if not word:
            skipped += 1
            continue

        flag = ExpansionFlag.parse(parts[FLAG_FIELD])
        yield parts[GROUP_ID_FIELD], WordEntry(word, flag)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed lines")


def parse_source(text: str) -> List[Tuple[str, WordEntry]]:
    """Parse the whole dictionary into an ordered list of records."""
    return list(iter_records(text))


# ============================================================================
# Grouping
# ============================================================================

def group_entries(
    records: List[Tuple[str, WordEntry]],
    min_size: int = MIN_GROUP_SIZE,
) -> List[SynonymGroup]:
    """
    Group records by group id.

    Groups keep first-seen order, as do the entries inside them. Groups
    smaller than ``min_size`` hold no synonym relation and are dropped.
    """
    groups: Dict[str, SynonymGroup] = {}
    for group_id, entry in records:
        group = groups.get(group_id)
        if group is None:
            group = groups[group_id] = SynonymGroup(group_id)
        group.entries.append(entry)

    return [g for g in groups.values() if len(g) >= min_size]
