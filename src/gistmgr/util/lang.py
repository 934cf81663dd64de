from __future__ import annotations

from typing import Optional

from pygments.lexers import get_lexer_for_filename, guess_lexer
from pygments.util import ClassNotFound

PLAIN_TEXT: str = "text"


def guess_language(filename: str, content: Optional[str] = None) -> str:
    """
    Return the editor syntax mode for a file.

    The file name decides first; when it is unknown the content is analysed.
    Anything unrecognised is plain text.
    """
    try:
        lexer = get_lexer_for_filename(filename or "")
    except ClassNotFound:
        if not content:
            return PLAIN_TEXT
        try:
            lexer = guess_lexer(content)
        except ClassNotFound:
            return PLAIN_TEXT
    return lexer.aliases[0] if lexer.aliases else PLAIN_TEXT
