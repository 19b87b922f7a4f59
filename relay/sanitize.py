"""
Move-token cleaning.

Models asked for "only the move" still wrap it in quotes, backticks, a full
stop or a trailing explanation. clean_move keeps the first token and strips
that decoration. It does not check that the token is a legal move.
"""

_QUOTE_CHARS = "'\"`"


def clean_move(raw: str) -> str:
    """
    Reduce model output to a single move token.

    Trims the text, keeps everything before the first whitespace, removes
    quote characters wherever they appear, then drops trailing periods.
    The function is idempotent: clean_move(clean_move(s)) == clean_move(s).

    Examples:
        >>> clean_move("Nf6\\n")
        'Nf6'
        >>> clean_move("'e4'.")
        'e4'
        >>> clean_move("Qxg7 (best)")
        'Qxg7'

    Args:
        raw: Text as returned by the model.

    Returns:
        The cleaned token, or "" when nothing usable is left.
    """
    tokens = raw.split(maxsplit=1)
    if not tokens:
        return ""
    token = tokens[0]
    for quote in _QUOTE_CHARS:
        token = token.replace(quote, "")
    return token.rstrip(".")
