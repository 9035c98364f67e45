"""Denylist gate for generated commands.

Plain substring containment, case-insensitive. No shell parsing, so it can
both over- and under-match; that is a known limitation of the gate.
"""

import logging
from typing import Iterable, Optional

from shellcraft.constants import DANGEROUS_COMMANDS

logger = logging.getLogger(__name__)


def find_dangerous_pattern(
    command: str,
    patterns: Iterable[str] = DANGEROUS_COMMANDS,
) -> Optional[str]:
    """Return the first denylist entry contained in the command, or None."""
    lowered = command.lower()
    for pattern in patterns:
        if pattern.lower() in lowered:
            return pattern
    return None


def is_dangerous_command(command: str) -> bool:
    """True if the command contains any denylisted substring."""
    pattern = find_dangerous_pattern(command)
    if pattern is not None:
        logger.debug("Command matched denylist entry %r", pattern)
        return True
    return False
