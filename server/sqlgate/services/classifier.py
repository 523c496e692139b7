"""
Statement classifier for the SQL gateway.

Decides whether a statement may run, using whole-word, case-insensitive
pattern matching (not a SQL parser). Checks run in a fixed order and the
first failing one wins:

  1. forbidden keyword anywhere in the text
  2. leading verb matches the declared intent (SELECT for reads, INSERT for writes)
  3. the permitted table is referenced
"""
import re
from enum import Enum

from sqlgate.db.schema import TABLE_NAME

PERMITTED_TABLE = TABLE_NAME

FORBIDDEN_KEYWORDS = (
    "update",
    "delete",
    "drop",
    "alter",
    "truncate",
    "grant",
    "revoke",
    "attach",
    "detach",
    "pragma",
)

_FORBIDDEN_RE = re.compile(r"\b(" + "|".join(FORBIDDEN_KEYWORDS) + r")\b", re.IGNORECASE)
_SELECT_RE = re.compile(r"^\s*select\b", re.IGNORECASE)
_INSERT_RE = re.compile(r"^\s*insert\b", re.IGNORECASE)


class Intent(str, Enum):
    """Which channel a statement arrived on."""
    READ = "read"
    WRITE = "write"


class ClassificationResult(str, Enum):
    FORBIDDEN = "forbidden"
    WRONG_INTENT = "wrong_intent"
    OUT_OF_SCOPE = "out_of_scope"
    APPROVED = "approved"


def is_forbidden(sql: str) -> bool:
    return _FORBIDDEN_RE.search(sql) is not None


def is_select(sql: str) -> bool:
    return _SELECT_RE.match(sql) is not None


def is_insert(sql: str) -> bool:
    return _INSERT_RE.match(sql) is not None


def touches_table(sql: str, table: str = PERMITTED_TABLE) -> bool:
    return re.search(r"\b" + re.escape(table) + r"\b", sql, re.IGNORECASE) is not None


def classify(sql: str, intent: Intent, table: str = PERMITTED_TABLE) -> ClassificationResult:
    if is_forbidden(sql):
        return ClassificationResult.FORBIDDEN
    matches_intent = is_select(sql) if intent is Intent.READ else is_insert(sql)
    if not matches_intent:
        return ClassificationResult.WRONG_INTENT
    if not touches_table(sql, table):
        return ClassificationResult.OUT_OF_SCOPE
    return ClassificationResult.APPROVED
