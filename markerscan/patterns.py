from __future__ import annotations

import re

MARKER_KEYWORDS = ("TODO", "FIXME", "HACK", "NOTE", "BUG")
MARKER_KEYWORD_PATTERN = "|".join(MARKER_KEYWORDS)

# Comment opener, keyword, optional colon, remainder of the line.
MARKER_RX = re.compile(rf"(?i)//\s*({MARKER_KEYWORD_PATTERN})\s*:?\s*(.*)")
