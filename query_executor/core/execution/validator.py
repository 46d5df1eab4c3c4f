"""
VALIDATOR - Decide whether a stored query is safe to run.

The policy is read-only: the query must start with SELECT and must not
mention any data-modifying keyword anywhere in its text. Matching is plain
substring matching on the upper-cased text, so a column such as
``created_at`` trips the CREATE check. SQL grammar is never parsed.
"""

import logging

from query_executor.core.exceptions import QueryValidationError

logger = logging.getLogger(__name__)

FORBIDDEN_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "CREATE",
    "ALTER",
    "TRUNCATE",
    "REPLACE",
    "MERGE",
)

NOT_A_SELECT_REASON = "Query is not a SELECT. Only SELECT queries are allowed."


def validate_read_only(sql: str) -> None:
    """
    Check a raw query against the read-only policy.

    Args:
        sql: Query text exactly as stored

    Raises:
        QueryValidationError: If the query is not a SELECT or contains a
            forbidden keyword. Keywords are checked in FORBIDDEN_KEYWORDS
            order and the first hit is reported.
    """
    normalized = sql.strip().upper()

    if not normalized.startswith("SELECT"):
        raise QueryValidationError(NOT_A_SELECT_REASON)

    for keyword in FORBIDDEN_KEYWORDS:
        if keyword in normalized:
            raise QueryValidationError(
                f"Query contains forbidden keyword: {keyword}. "
                "Only SELECT queries are allowed.",
                keyword=keyword,
            )

    logger.debug("Query validated as read-only")
