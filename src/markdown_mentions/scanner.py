"""Scan rendered text for @mention candidates"""

import re
from typing import Optional, Set

# "@" at the start of the text or after whitespace or another "@", followed by
# word characters. "@@foo" yields "foo"; "@foo@bar" only yields "foo" because
# the second "@" follows a word character.
MENTION_PATTERN = re.compile(r"(?:^|(?<=[\s@]))@(\w+)")


def find_potential_mentions(text: Optional[str]) -> Set[str]:
    """Extract distinct candidate usernames from text

    Args:
        text: Rendered text, may be None

    Returns:
        Set of usernames (without the leading @). Empty if there are none.

    Example:
        >>> sorted(find_potential_mentions("@ @foo @bar tst @"))
        ['bar', 'foo']
        >>> find_potential_mentions("@ @foo@bar tst @")
        {'foo'}
    """
    if not text:
        return set()

    return set(MENTION_PATTERN.findall(text))
