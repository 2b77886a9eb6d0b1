"""
Fluent SQL query builder.

Conditions are collected as ``(connector, fragment)`` pairs so that
``or_where`` really joins with ``OR`` instead of silently becoming another
``AND``. Values never end up in the SQL text returned by ``build()``; they
are returned as positional ``?`` parameters.
"""

from typing import Any, List, Optional, Sequence, Tuple

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

_MISSING = object()
_OPERATORS = {"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "NOT LIKE"}
_DIRECTIONS = {"ASC", "DESC"}


class SQLQueryBuilder:
    """Builds parameterised SELECT statements step by step."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> "SQLQueryBuilder":
        self._columns: List[str] = []
        self._table: Optional[str] = None
        self._joins: List[str] = []
        self._conditions: List[Tuple[str, str]] = []
        self._params: List[Any] = []
        self._group_by: List[str] = []
        self._having: List[str] = []
        self._having_params: List[Any] = []
        self._order_by: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        return self

    def select(self, *columns: str) -> "SQLQueryBuilder":
        self._columns.extend(columns)
        return self

    def from_(self, table: str, alias: Optional[str] = None) -> "SQLQueryBuilder":
        self._table = f"{table} {alias}" if alias else table
        return self

    def join(self, table: str, on: str, kind: str = "JOIN") -> "SQLQueryBuilder":
        self._joins.append(f"{kind} {table} ON {on}")
        return self

    def left_join(self, table: str, on: str) -> "SQLQueryBuilder":
        return self.join(table, on, "LEFT JOIN")

    def right_join(self, table: str, on: str) -> "SQLQueryBuilder":
        return self.join(table, on, "RIGHT JOIN")

    def inner_join(self, table: str, on: str) -> "SQLQueryBuilder":
        return self.join(table, on, "INNER JOIN")

    def where(self, column: str, op_or_value: Any, value: Any = _MISSING) -> "SQLQueryBuilder":
        """
        Add an AND condition.

        ``where("age", 30)`` means ``age = ?``; ``where("age", ">", 30)``
        uses the given operator.
        """
        return self._add_condition("AND", column, op_or_value, value)

    def or_where(self, column: str, op_or_value: Any, value: Any = _MISSING) -> "SQLQueryBuilder":
        return self._add_condition("OR", column, op_or_value, value)

    def where_in(self, column: str, values: Sequence[Any]) -> "SQLQueryBuilder":
        if not values:
            raise ValidationException(column, values, "IN list must not be empty")
        placeholders = ", ".join("?" for _ in values)
        self._conditions.append(("AND", f"{column} IN ({placeholders})"))
        self._params.extend(values)
        return self

    def where_between(self, column: str, low: Any, high: Any) -> "SQLQueryBuilder":
        self._conditions.append(("AND", f"{column} BETWEEN ? AND ?"))
        self._params.extend([low, high])
        return self

    def where_null(self, column: str) -> "SQLQueryBuilder":
        self._conditions.append(("AND", f"{column} IS NULL"))
        return self

    def where_not_null(self, column: str) -> "SQLQueryBuilder":
        self._conditions.append(("AND", f"{column} IS NOT NULL"))
        return self

    def group_by(self, *columns: str) -> "SQLQueryBuilder":
        self._group_by.extend(columns)
        return self

    def having(self, condition: str, *params: Any) -> "SQLQueryBuilder":
        self._having.append(condition)
        self._having_params.extend(params)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "SQLQueryBuilder":
        direction = direction.upper()
        if direction not in _DIRECTIONS:
            raise ValidationException("direction", direction, "must be ASC or DESC")
        self._order_by.append(f"{column} {direction}")
        return self

    def limit(self, count: int) -> "SQLQueryBuilder":
        if count < 0:
            raise ValidationException("limit", count, "must not be negative")
        self._limit = count
        return self

    def offset(self, count: int) -> "SQLQueryBuilder":
        if count < 0:
            raise ValidationException("offset", count, "must not be negative")
        self._offset = count
        return self

    def build(self) -> Tuple[str, List[Any]]:
        """
        Assemble the statement.

        Returns:
            ``(sql, params)`` with ``?`` placeholders

        Raises:
            ValidationException: If no table was given
        """
        if not self._table:
            raise ValidationException("from", None, "a FROM table is required")

        parts = [f"SELECT {', '.join(self._columns) or '*'}", f"FROM {self._table}"]
        parts.extend(self._joins)
        if self._conditions:
            clause = self._conditions[0][1]
            for connector, fragment in self._conditions[1:]:
                clause += f" {connector} {fragment}"
            parts.append(f"WHERE {clause}")
        if self._group_by:
            parts.append(f"GROUP BY {', '.join(self._group_by)}")
        if self._having:
            parts.append(f"HAVING {' AND '.join(self._having)}")
        if self._order_by:
            parts.append(f"ORDER BY {', '.join(self._order_by)}")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        if self._offset is not None:
            parts.append(f"OFFSET {self._offset}")

        sql = " ".join(parts)
        params = self._params + self._having_params
        logger.debug("Query built", sql=sql, param_count=len(params))
        return sql, params

    def to_sql(self) -> str:
        """Statement with parameters inlined, for display only."""
        sql, params = self.build()
        for param in params:
            sql = sql.replace("?", _quote(param), 1)
        return sql

    def _add_condition(self, connector: str, column: str, op_or_value: Any, value: Any) -> "SQLQueryBuilder":
        if value is _MISSING:
            operator, value = "=", op_or_value
        else:
            operator = str(op_or_value).upper()
            if operator not in _OPERATORS:
                raise ValidationException("operator", op_or_value, "unsupported comparison operator")
        self._conditions.append((connector, f"{column} {operator} ?"))
        self._params.append(value)
        return self


def _quote(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


@demo(
    "builder.query-builder",
    pattern="Builder",
    category=Category.CREATIONAL,
    title="Fluent parameterised SQL construction",
)
def run_demo() -> None:
    builder = SQLQueryBuilder()

    sql, params = (
        builder.select("u.id", "u.name", "COUNT(o.id) AS orders")
        .from_("users", "u")
        .left_join("orders o", "o.user_id = u.id")
        .where("u.status", "active")
        .where("u.created_at", ">=", "2024-01-01")
        .group_by("u.id", "u.name")
        .having("COUNT(o.id) > ?", 5)
        .order_by("orders", "desc")
        .limit(10)
        .build()
    )
    print(f"Report query:\n  {sql}\n  params={params}")

    builder.reset().from_("products").where("category", "books").or_where("category", "music")
    builder.where_between("price", 5, 50).where_not_null("published_at")
    print(f"\nCatalog query:\n  {builder.to_sql()}")

    builder.reset().select("*").from_("tickets").where_in("priority", ["high", "urgent"]).offset(20).limit(10)
    print(f"\nPaged query:\n  {builder.to_sql()}")

    try:
        SQLQueryBuilder().select("id").build()
    except ValidationException as e:
        print(f"\nRejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
