from datetime import date

import pytest

from flightduck.query_builder import (
    Aggregate, Filter, GroupBy, QueryExpression, Sort, TableRef, col, compile_query, table
)


def test_table_renders_select_star():
    assert table('flights').to_sql() == 'SELECT *\nFROM "flights"'


def test_filter_and_limit():
    expr = table('flights').filter(col('OriginCityName') == 'Richmond, VA').limit(10)

    assert expr.to_sql() == (
        'SELECT *\n'
        'FROM "flights"\n'
        'WHERE "OriginCityName" = \'Richmond, VA\'\n'
        'LIMIT 10'
    )


def test_grouped_mean_sorted_descending():
    expr = (table('flights')
            .group_by('Marketing_Airline_Network')
            .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay')
            .sort('avg_dep_delay', descending=True))

    assert expr.to_sql() == (
        'SELECT "Marketing_Airline_Network", AVG("DepDelayMinutes") AS "avg_dep_delay"\n'
        'FROM "flights"\n'
        'GROUP BY "Marketing_Airline_Network"\n'
        'ORDER BY "avg_dep_delay" DESC'
    )


def test_join_with_different_key_names():
    expr = table('flights').join('carrier_tbl', 'Marketing_Airline_Network', 'Code')

    assert expr.to_sql() == (
        'SELECT "q01".*, "q02".* EXCLUDE ("Code")\n'
        'FROM "flights" AS "q01"\n'
        'LEFT JOIN "carrier_tbl" AS "q02"\n'
        '  ON "q01"."Marketing_Airline_Network" = "q02"."Code"'
    )


def test_join_with_shared_key_name_uses_using():
    expr = table('a').join(table('b'), 'id', how='inner')

    assert 'INNER JOIN "b" AS "q02"\n  USING ("id")' in expr.to_sql()


def test_join_against_composed_expression_nests_subquery():
    recent = table('flights').filter(col('FlightDate') >= date(2023, 1, 1))
    expr = table('carrier_tbl').join(recent, 'Code', 'Marketing_Airline_Network')

    sql = expr.to_sql()
    assert 'LEFT JOIN (\n  SELECT *\n  FROM "flights"\n  WHERE "FlightDate" >= DATE \'2023-01-01\'\n) AS "q02"' in sql
    assert 'ON "q01"."Code" = "q02"."Marketing_Airline_Network"' in sql


def test_filter_after_aggregate_wraps_subquery():
    expr = (table('flights')
            .group_by('k')
            .aggregate('mean', 'v', 'm')
            .filter(col('m') > 5))

    assert expr.to_sql() == (
        'SELECT *\n'
        'FROM (\n'
        '  SELECT "k", AVG("v") AS "m"\n'
        '  FROM "flights"\n'
        '  GROUP BY "k"\n'
        ') AS "q01"\n'
        'WHERE "m" > 5'
    )


def test_multiple_filters_are_anded():
    expr = table('t').filter(col('a') == 1).filter(col('b') != None)  # noqa: E711

    assert 'WHERE "a" = 1\n  AND "b" IS NOT NULL' in expr.to_sql()


def test_predicate_combinators():
    predicate = ((col('a') == 1) & (col('b') < 2)) | ~col('c').isin(['x', "O'Hare"])

    assert predicate.to_sql() == (
        '(("a" = 1 AND "b" < 2) OR (NOT "c" IN (\'x\', \'O\'\'Hare\')))'
    )


def test_predicates_reject_boolean_use():
    with pytest.raises(TypeError):
        bool(col('a') == 1)


def test_count_star_and_distinct():
    expr = (table('flights')
            .aggregate('count', alias='num_flights')
            .aggregate('n_distinct', 'Marketing_Airline_Network'))

    assert expr.to_sql() == (
        'SELECT COUNT(*) AS "num_flights", '
        'COUNT(DISTINCT "Marketing_Airline_Network") AS "n_distinct_Marketing_Airline_Network"\n'
        'FROM "flights"'
    )


def test_limit_after_limit_keeps_smaller():
    assert table('t').limit(10).limit(3).to_sql().endswith('LIMIT 3')


def test_sort_after_limit_wraps():
    sql = table('t').limit(5).sort('x').to_sql()

    assert sql.startswith('SELECT *\nFROM (')
    assert sql.endswith(') AS "q01"\nORDER BY "x"')


def test_select_columns():
    sql = table('t').select('a', 'b').to_sql()

    assert sql == 'SELECT "a", "b"\nFROM "t"'


def test_methods_return_new_expressions():
    base = table('flights')
    filtered = base.filter(col('DepDelayMinutes') > 15)
    grouped = filtered.group_by('Marketing_Airline_Network')

    assert filtered is not base
    assert base.to_sql() == 'SELECT *\nFROM "flights"'
    assert isinstance(filtered.node, Filter)
    assert isinstance(grouped.node, GroupBy)
    assert grouped.node.source is filtered.node


def test_tree_is_built_from_tagged_nodes():
    expr = (table('flights')
            .group_by('Marketing_Airline_Network')
            .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay')
            .sort('avg_dep_delay', descending=True))

    sort = expr.node
    assert isinstance(sort, Sort) and sort.descending
    assert isinstance(sort.source, Aggregate)
    assert sort.source.fn == 'mean'
    assert isinstance(sort.source.source.source, TableRef)


def test_explain_is_idempotent():
    expr = table('flights').join('carrier_tbl', 'Marketing_Airline_Network', 'Code').limit(3)

    assert expr.explain() == expr.explain() == compile_query(expr.node)


@pytest.mark.parametrize('call', [
    lambda e: e.aggregate('median', 'x'),
    lambda e: e.aggregate('mean'),
    lambda e: e.limit(-1),
    lambda e: e.limit(2.5),
    lambda e: e.join('other', 'k', how='cross'),
    lambda e: e.group_by(),
    lambda e: e.select(),
])
def test_invalid_building_blocks_raise_value_error(call):
    with pytest.raises(ValueError):
        call(table('t'))


def test_filter_requires_predicate():
    with pytest.raises(TypeError):
        table('t').filter('a = 1')


def test_materialize_without_connection():
    with pytest.raises(RuntimeError):
        QueryExpression(TableRef('t')).materialize()


def test_join_keeps_both_keys_for_outer_joins():
    sql = table('flights').join('carrier_tbl', 'Marketing_Airline_Network', 'Code', how='full').to_sql()

    assert sql.startswith('SELECT *\n')


def test_filter_between_group_by_and_aggregate_narrows_rows():
    expr = (table('flights')
            .group_by('Marketing_Airline_Network')
            .filter(col('DepDelayMinutes') > 0)
            .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay'))

    assert expr.to_sql() == (
        'SELECT "Marketing_Airline_Network", AVG("DepDelayMinutes") AS "avg_dep_delay"\n'
        'FROM "flights"\n'
        'WHERE "DepDelayMinutes" > 0\n'
        'GROUP BY "Marketing_Airline_Network"'
    )


def test_sort_on_group_key_before_aggregate():
    expr = table('t').group_by('k').sort('k').aggregate('mean', 'v', 'm')

    assert expr.to_sql() == (
        'SELECT "k", AVG("v") AS "m"\n'
        'FROM "t"\n'
        'GROUP BY "k"\n'
        'ORDER BY "k"'
    )


def test_regrouping_replaces_keys():
    expr = table('t').group_by('a').group_by('b').aggregate('count', alias='n')

    assert expr.to_sql() == 'SELECT "b", COUNT(*) AS "n"\nFROM "t"\nGROUP BY "b"'


@pytest.mark.parametrize('call', [
    lambda e: e.sort('v'),
    lambda e: e.limit(3),
    lambda e: e.select('k'),
    lambda e: e.join('other', 'k'),
    lambda e: table('other').join(e, 'k'),
    lambda e: e.sort('k').group_by('j'),
])
def test_grouping_needs_aggregate_first(call):
    grouped = table('t').group_by('k')

    with pytest.raises(ValueError):
        call(grouped)


def test_filter_after_select_wraps_subquery():
    expr = table('flights').select('OriginCityName').filter(col('DepDelayMinutes') > 50)

    assert expr.to_sql() == (
        'SELECT *\n'
        'FROM (\n'
        '  SELECT "OriginCityName"\n'
        '  FROM "flights"\n'
        ') AS "q01"\n'
        'WHERE "DepDelayMinutes" > 50'
    )
