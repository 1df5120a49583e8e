"""Display name generation from adjective/noun word lists."""

import logging
import random
from pathlib import Path
from typing import List, Optional

from .errors import NameSourceUnavailable

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_ADJECTIVES_FILE = DATA_DIR / "adjectives.txt"
DEFAULT_NOUNS_FILE = DATA_DIR / "nouns.txt"

PLACEHOLDER_NAME = "Anonymous Visitor"


def _read_words(path: Path) -> List[str]:
    """Read a line-delimited word list, skipping blank lines."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise NameSourceUnavailable(str(path), e.strerror or str(e)) from e

    words = [line.strip() for line in text.splitlines() if line.strip()]
    if not words:
        raise NameSourceUnavailable(str(path), "word list is empty")
    return words


class NameSource:
    """Builds ``"<adjective> <noun>"`` names.

    Word lists are read on first use and cached. A failed read is not cached,
    so a fixed file is picked up by the next registration.
    """

    def __init__(
        self,
        adjectives_file: Optional[str] = None,
        nouns_file: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ):
        self.adjectives_file = Path(adjectives_file) if adjectives_file else DEFAULT_ADJECTIVES_FILE
        self.nouns_file = Path(nouns_file) if nouns_file else DEFAULT_NOUNS_FILE
        self._rng = rng or random.Random()
        self._adjectives: Optional[List[str]] = None
        self._nouns: Optional[List[str]] = None

    def generate(self) -> str:
        """Pick a random name.

        Raises:
            NameSourceUnavailable: If either word list cannot be read
        """
        if self._adjectives is None:
            self._adjectives = _read_words(self.adjectives_file)
        if self._nouns is None:
            self._nouns = _read_words(self.nouns_file)
        return f"{self._rng.choice(self._adjectives)} {self._rng.choice(self._nouns)}"

    def generate_or_placeholder(self) -> str:
        """Like ``generate`` but degrades to a placeholder name."""
        try:
            return self.generate()
        except NameSourceUnavailable as e:
            logger.warning(f"{e}; using placeholder name")
            return PLACEHOLDER_NAME
