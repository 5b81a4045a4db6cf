import re

from sqlwork.exception import SqlworkError

DOLLAR_KEYWORD = re.compile(r"(\$([a-z][a-z0-9_]*))")
DOLLAR_POSITIONAL = re.compile(r"(\$(\d+))")


def convert_sql_params(
    query: str, positional_sub: str = r"%s", keyword_sub: str = r"%(\2)s"
) -> str:
    """Rewrite `$name` and `$1` placeholders into a driver paramstyle

    Args:
        query (str): SQL text using dollar placeholders
        positional_sub (str, optional): Substitution for `$1` style
            placeholders. Defaults to `%s`.
        keyword_sub (str, optional): Substitution for `$name` style
            placeholders. Defaults to `%(name)s`.

    Raises:
        SqlworkError: If keyword and positional placeholders are mixed

    Returns:
        str: The converted SQL
    """
    matches = 0
    if DOLLAR_KEYWORD.search(query):
        matches += 1
        query = DOLLAR_KEYWORD.sub(keyword_sub, query, 0)
    if DOLLAR_POSITIONAL.search(query):
        matches += 1
        query = DOLLAR_POSITIONAL.sub(positional_sub, query, 0)
    if matches > 1:
        raise SqlworkError(
            f"Cannot mix keyword and positional params in: {query}"
        )
    return query
