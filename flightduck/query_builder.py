"""
Query Builder

Composable, lazily evaluated queries that translate to SQL.

A QueryExpression wraps an immutable tree of nodes (TableRef, Filter, Join,
GroupBy, Aggregate, Sort, Limit, Select). Each method returns a new
expression; nothing is sent to the database until the expression is
materialized. The tree is translated by a single function, compile_query(),
which folds the nodes into one SELECT and nests a subquery whenever a node
cannot be merged into the current level (for example, a filter applied
after an aggregation).

Example:
    >>> expr = (table('flights')
    ...         .group_by('Marketing_Airline_Network')
    ...         .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay')
    ...         .sort('avg_dep_delay', descending=True))
    >>> print(expr.to_sql())
    SELECT "Marketing_Airline_Network", AVG("DepDelayMinutes") AS "avg_dep_delay"
    FROM "flights"
    GROUP BY "Marketing_Airline_Network"
    ORDER BY "avg_dep_delay" DESC
"""

import textwrap
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from flightduck.utils import quote_identifier, sql_literal

# Aggregate function names accepted by QueryExpression.aggregate()
AGGREGATE_FUNCTIONS = {
    'mean': 'AVG',
    'avg': 'AVG',
    'sum': 'SUM',
    'min': 'MIN',
    'max': 'MAX',
    'count': 'COUNT',
    'n_distinct': 'COUNT',
}

JOIN_TYPES = {
    'left': 'LEFT JOIN',
    'inner': 'INNER JOIN',
    'right': 'RIGHT JOIN',
    'full': 'FULL OUTER JOIN',
}

COMPARISON_OPERATORS = {
    '==': '=',
    '!=': '<>',
    '<': '<',
    '<=': '<=',
    '>': '>',
    '>=': '>=',
}


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

class Predicate:
    """Boolean condition usable in QueryExpression.filter()."""

    def __and__(self, other: 'Predicate') -> 'Predicate':
        return And(self, _check_predicate(other))

    def __or__(self, other: 'Predicate') -> 'Predicate':
        return Or(self, _check_predicate(other))

    def __invert__(self) -> 'Predicate':
        return Not(self)

    def __bool__(self):
        raise TypeError("Predicates cannot be used as booleans; combine them with &, | and ~")

    def to_sql(self) -> str:
        raise NotImplementedError


def _check_predicate(value: Any) -> Predicate:
    if not isinstance(value, Predicate):
        raise TypeError(f"Expected a predicate, got {type(value).__name__}")
    return value


class Column:
    """
    Reference to a column by name.

    Comparison operators build predicates instead of returning booleans:
    ``col('OriginCityName') == 'Richmond, VA'``.
    """

    def __init__(self, name: str):
        self.name = name

    def _compare(self, op: str, other: Any) -> Predicate:
        if other is None and op in ('==', '!='):
            return NullCheck(self, negated=(op == '!='))
        return Comparison(self, op, other)

    def __eq__(self, other):
        return self._compare('==', other)

    def __ne__(self, other):
        return self._compare('!=', other)

    def __lt__(self, other):
        return self._compare('<', other)

    def __le__(self, other):
        return self._compare('<=', other)

    def __gt__(self, other):
        return self._compare('>', other)

    def __ge__(self, other):
        return self._compare('>=', other)

    __hash__ = None

    def is_null(self) -> Predicate:
        return NullCheck(self)

    def is_not_null(self) -> Predicate:
        return NullCheck(self, negated=True)

    def isin(self, values) -> Predicate:
        return Membership(self, tuple(values))

    def to_sql(self) -> str:
        return quote_identifier(self.name)

    def __repr__(self) -> str:
        return f"col({self.name!r})"


def col(name: str) -> Column:
    """Shorthand for Column(name)."""
    return Column(name)


def _operand_sql(value: Any) -> str:
    if isinstance(value, Column):
        return value.to_sql()
    return sql_literal(value)


@dataclass(frozen=True, eq=False)
class Comparison(Predicate):
    column: Column
    op: str
    value: Any

    def to_sql(self) -> str:
        return f"{self.column.to_sql()} {COMPARISON_OPERATORS[self.op]} {_operand_sql(self.value)}"


@dataclass(frozen=True, eq=False)
class NullCheck(Predicate):
    column: Column
    negated: bool = False

    def to_sql(self) -> str:
        return f"{self.column.to_sql()} IS {'NOT ' if self.negated else ''}NULL"


@dataclass(frozen=True, eq=False)
class Membership(Predicate):
    column: Column
    values: Tuple[Any, ...]

    def to_sql(self) -> str:
        if not self.values:
            return 'FALSE'
        items = ', '.join(_operand_sql(value) for value in self.values)
        return f"{self.column.to_sql()} IN ({items})"


@dataclass(frozen=True, eq=False)
class And(Predicate):
    left: Predicate
    right: Predicate

    def to_sql(self) -> str:
        return f"({self.left.to_sql()} AND {self.right.to_sql()})"


@dataclass(frozen=True, eq=False)
class Or(Predicate):
    left: Predicate
    right: Predicate

    def to_sql(self) -> str:
        return f"({self.left.to_sql()} OR {self.right.to_sql()})"


@dataclass(frozen=True, eq=False)
class Not(Predicate):
    operand: Predicate

    def to_sql(self) -> str:
        return f"(NOT {self.operand.to_sql()})"


# ---------------------------------------------------------------------------
# Expression tree nodes
# ---------------------------------------------------------------------------

class Node:
    """Base class for expression tree nodes."""


@dataclass(frozen=True)
class TableRef(Node):
    name: str


@dataclass(frozen=True)
class Filter(Node):
    source: Node
    predicate: Predicate


@dataclass(frozen=True)
class Join(Node):
    source: Node
    other: Node
    on_left: str
    on_right: str
    how: str = 'left'


@dataclass(frozen=True)
class GroupBy(Node):
    source: Node
    keys: Tuple[str, ...]


@dataclass(frozen=True)
class Aggregate(Node):
    source: Node
    fn: str
    column: Optional[str]
    alias: str


@dataclass(frozen=True)
class Sort(Node):
    source: Node
    key: str
    descending: bool = False


@dataclass(frozen=True)
class Limit(Node):
    source: Node
    n: int


@dataclass(frozen=True)
class Select(Node):
    source: Node
    columns: Tuple[str, ...]


# ---------------------------------------------------------------------------
# Translation to SQL
# ---------------------------------------------------------------------------

@dataclass
class _SelectState:
    """One SELECT level being assembled during translation."""

    source: str
    is_table: bool = False
    star: str = '*'
    columns: Optional[List[str]] = None
    where: List[str] = field(default_factory=list)
    group_by: List[str] = field(default_factory=list)
    aggregates: List[str] = field(default_factory=list)
    order_key: Optional[str] = None
    order_by: Optional[str] = None
    limit: Optional[int] = None

    def is_plain(self) -> bool:
        return (self.columns is None and not self.where and not self.group_by
                and not self.aggregates and self.order_by is None and self.limit is None)

    def is_pending_group(self) -> bool:
        """Grouping keys are set but no aggregate has been added yet."""
        return bool(self.group_by) and not self.aggregates

    def render(self) -> str:
        if self.group_by or self.aggregates:
            items = [quote_identifier(key) for key in self.group_by] + self.aggregates
        elif self.columns is not None:
            items = self.columns
        else:
            items = [self.star]

        lines = [f"SELECT {', '.join(items)}", f"FROM {self.source}"]
        if self.where:
            lines.append("WHERE " + "\n  AND ".join(self.where))
        if self.group_by:
            lines.append("GROUP BY " + ', '.join(quote_identifier(key) for key in self.group_by))
        if self.order_by is not None:
            lines.append(f"ORDER BY {self.order_by}")
        if self.limit is not None:
            lines.append(f"LIMIT {self.limit}")
        return '\n'.join(lines)


class _Compiler:
    """Folds an expression tree into nested SELECT levels."""

    def __init__(self):
        self._alias_count = 0

    def _alias(self) -> str:
        self._alias_count += 1
        return quote_identifier(f"q{self._alias_count:02d}")

    def _subquery(self, state: _SelectState) -> Tuple[str, str]:
        alias = self._alias()
        return f"(\n{textwrap.indent(state.render(), '  ')}\n) AS {alias}", alias

    def _wrap(self, state: _SelectState) -> _SelectState:
        clause, _ = self._subquery(state)
        return _SelectState(source=clause)

    def _relation(self, state: _SelectState) -> Tuple[str, str]:
        """Render a state as a join operand, returning (clause, alias)."""
        if state.is_table and state.is_plain():
            alias = self._alias()
            return f"{state.source} AS {alias}", alias
        return self._subquery(state)

    def compile(self, node: Node) -> _SelectState:
        if isinstance(node, TableRef):
            return _SelectState(source=quote_identifier(node.name), is_table=True)

        if isinstance(node, Filter):
            state = self.compile(node.source)
            # Before aggregation a filter narrows the rows being grouped
            if state.aggregates or state.columns is not None or state.limit is not None:
                state = self._wrap(state)
            state.where.append(node.predicate.to_sql())
            return state

        if isinstance(node, Join):
            left = self._applied(self.compile(node.source), 'join')
            left_clause, left_alias = self._relation(left)
            right = self._applied(self.compile(node.other), 'join')
            right_clause, right_alias = self._relation(right)
            star = '*'
            if node.on_left == node.on_right:
                condition = f"USING ({quote_identifier(node.on_left)})"
            else:
                condition = (f"ON {left_alias}.{quote_identifier(node.on_left)} = "
                             f"{right_alias}.{quote_identifier(node.on_right)}")
                # The lookup key duplicates the base key on every kept row
                if node.how in ('left', 'inner'):
                    star = (f"{left_alias}.*, {right_alias}.* "
                            f"EXCLUDE ({quote_identifier(node.on_right)})")
            source = f"{left_clause}\n{JOIN_TYPES[node.how]} {right_clause}\n  {condition}"
            return _SelectState(source=source, star=star)

        if isinstance(node, GroupBy):
            state = self.compile(node.source)
            if state.is_pending_group():
                # Regrouping replaces the keys, as long as the ordering still applies
                if state.order_key is not None and state.order_key not in node.keys:
                    raise ValueError(
                        f"sort('{state.order_key}') is not a key of group_by{tuple(node.keys)}"
                    )
            elif (state.columns is not None or state.aggregates
                    or state.order_by is not None or state.limit is not None):
                state = self._wrap(state)
            state.group_by = list(node.keys)
            return state

        if isinstance(node, Aggregate):
            state = self.compile(node.source)
            if (state.limit is not None or state.columns is not None
                    or (state.order_by is not None and not state.is_pending_group())):
                state = self._wrap(state)
            state.aggregates.append(_aggregate_sql(node))
            return state

        if isinstance(node, Sort):
            state = self.compile(node.source)
            if state.is_pending_group() and node.key not in state.group_by:
                raise ValueError(
                    f"sort('{node.key}') before aggregate() must use a group_by key "
                    f"{tuple(state.group_by)}"
                )
            if state.limit is not None:
                state = self._wrap(state)
            direction = ' DESC' if node.descending else ''
            state.order_key = node.key
            state.order_by = f"{quote_identifier(node.key)}{direction}"
            return state

        if isinstance(node, Limit):
            state = self._applied(self.compile(node.source), 'limit')
            state.limit = node.n if state.limit is None else min(state.limit, node.n)
            return state

        if isinstance(node, Select):
            state = self._applied(self.compile(node.source), 'select')
            if state.columns is not None or state.group_by or state.aggregates:
                state = self._wrap(state)
            state.columns = [quote_identifier(column) for column in node.columns]
            return state

        raise TypeError(f"Unknown expression node: {type(node).__name__}")

    @staticmethod
    def _applied(state: _SelectState, operation: str) -> _SelectState:
        if state.is_pending_group():
            raise ValueError(
                f"group_by{tuple(state.group_by)} needs an aggregate() before {operation}()"
            )
        return state


def _aggregate_sql(node: Aggregate) -> str:
    function = AGGREGATE_FUNCTIONS[node.fn]
    if node.column is None:
        argument = '*'
    elif node.fn == 'n_distinct':
        argument = f"DISTINCT {quote_identifier(node.column)}"
    else:
        argument = quote_identifier(node.column)
    return f"{function}({argument}) AS {quote_identifier(node.alias)}"


def compile_query(node: Node) -> str:
    """
    Translate an expression tree into SQL text.

    Pure function: the same tree always gives the same text.

    Args:
        node: Root of the expression tree

    Returns:
        SQL query string
    """
    return _Compiler().compile(node).render()


# ---------------------------------------------------------------------------
# Public handle
# ---------------------------------------------------------------------------

class QueryExpression:
    """
    Lazy, immutable handle over an expression tree.

    Attributes:
        node: Root node of the expression tree
        connection: DatabaseConnection used by materialize(), if bound
    """

    def __init__(self, node: Node, connection=None):
        self._node = node
        self._connection = connection

    @property
    def node(self) -> Node:
        return self._node

    @property
    def connection(self):
        return self._connection

    def _derive(self, node: Node) -> 'QueryExpression':
        # Translating is pure, so an invalid composition fails where it is built
        _Compiler().compile(node)
        return QueryExpression(node, self._connection)

    def filter(self, predicate: Predicate) -> 'QueryExpression':
        """Keep rows matching a predicate built with col()."""
        return self._derive(Filter(self._node, _check_predicate(predicate)))

    def join(self, other, on_left: str, on_right: Optional[str] = None,
             how: str = 'left') -> 'QueryExpression':
        """
        Join another table or expression.

        Args:
            other: Table name or QueryExpression
            on_left: Key column on this side
            on_right: Key column on the other side (default: on_left)
            how: 'left' (default), 'inner', 'right' or 'full'

        Left and inner joins on differently named keys keep only this
        side's key column, like join_left().

        Returns:
            New expression
        """
        if how not in JOIN_TYPES:
            raise ValueError(f"Unsupported join type '{how}'. Use one of {list(JOIN_TYPES)}")
        other_node = other.node if isinstance(other, QueryExpression) else TableRef(other)
        return self._derive(Join(self._node, other_node, on_left, on_right or on_left, how))

    def group_by(self, *keys: str) -> 'QueryExpression':
        """Group rows by one or more key columns."""
        if len(keys) == 1 and isinstance(keys[0], (list, tuple)):
            keys = tuple(keys[0])
        if not keys:
            raise ValueError("group_by() needs at least one key column")
        return self._derive(GroupBy(self._node, tuple(keys)))

    def aggregate(self, fn: str, column: Optional[str] = None,
                  alias: Optional[str] = None) -> 'QueryExpression':
        """
        Add an aggregate to the current grouping (or the whole table).

        Nulls are ignored by every function except count(*) (column=None).

        Args:
            fn: One of 'mean', 'avg', 'sum', 'min', 'max', 'count', 'n_distinct'
            column: Column to aggregate; only 'count' accepts None
            alias: Output column name (default: '<fn>_<column>', or 'n')

        Returns:
            New expression
        """
        if fn not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"Unsupported aggregate '{fn}'. Use one of {list(AGGREGATE_FUNCTIONS)}")
        if column is None and fn != 'count':
            raise ValueError(f"Aggregate '{fn}' needs a column")
        if alias is None:
            alias = f"{fn}_{column}" if column is not None else 'n'
        return self._derive(Aggregate(self._node, fn, column, alias))

    def sort(self, key: str, descending: bool = False) -> 'QueryExpression':
        """
        Order rows by a column; replaces any earlier ordering.

        Between group_by() and aggregate() only a grouping key can be used.
        """
        return self._derive(Sort(self._node, key, descending))

    def limit(self, n: int) -> 'QueryExpression':
        """Keep at most n rows. A grouping needs its aggregate() first."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise ValueError(f"limit() needs a non-negative integer, got {n!r}")
        return self._derive(Limit(self._node, n))

    def select(self, *columns: str) -> 'QueryExpression':
        """Keep only the named columns. A grouping needs its aggregate() first."""
        if len(columns) == 1 and isinstance(columns[0], (list, tuple)):
            columns = tuple(columns[0])
        if not columns:
            raise ValueError("select() needs at least one column")
        return self._derive(Select(self._node, tuple(columns)))

    def to_sql(self) -> str:
        """Translated SQL text."""
        return compile_query(self._node)

    def explain(self) -> str:
        """Translated SQL text, without executing anything."""
        if self._connection is not None:
            return self._connection.explain(self)
        return self.to_sql()

    def materialize(self):
        """
        Run the query and return the result as a DataFrame.

        Raises:
            RuntimeError: If the expression is not bound to a connection
        """
        if self._connection is None:
            raise RuntimeError("Expression is not bound to a database connection")
        return self._connection.materialize(self)

    collect = materialize

    def __repr__(self) -> str:
        return f"<QueryExpression\n{self.to_sql()}\n>"


def table(name: str, connection=None) -> QueryExpression:
    """Start an expression from a table name."""
    return QueryExpression(TableRef(name), connection)
