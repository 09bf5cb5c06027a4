"""
Analytical Query Definitions

This module contains the analytical queries used in the FlightDuck walkthrough.
Most queries are written twice: once as raw SQL text and once as a composed
QueryExpression. Both forms must return the same rows for the same data,
which the benchmark module checks.

Query Categories:
- Exploration (flights out of a given city)
- Delay analysis (mean departure delay by carrier code / carrier name / month)
- Calendar analysis (flights on holidays)
"""

from typing import Callable, Dict, Optional

from flightduck.config import CARRIER_TABLE, FLIGHTS_TABLE, HOLIDAY_TABLE
from flightduck.query_builder import QueryExpression, col


def _richmond_departures(conn) -> QueryExpression:
    return (conn.build_query(FLIGHTS_TABLE)
            .filter(col('OriginCityName') == 'Richmond, VA')
            .limit(10))


def _avg_delay_by_carrier_code(conn) -> QueryExpression:
    return (conn.build_query(FLIGHTS_TABLE)
            .group_by('Marketing_Airline_Network')
            .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay')
            .sort('avg_dep_delay', descending=True))


def _avg_delay_by_carrier_name(conn) -> QueryExpression:
    carriers = conn.build_query(CARRIER_TABLE)
    return (conn.build_query(FLIGHTS_TABLE)
            .join(carriers, 'Marketing_Airline_Network', 'Code')
            .group_by('CarrierName')
            .aggregate('mean', 'DepDelayMinutes', 'avg_dep_delay')
            .sort('avg_dep_delay', descending=True))


def _flights_by_holiday(conn) -> QueryExpression:
    holidays = conn.build_query(HOLIDAY_TABLE)
    return (conn.build_query(FLIGHTS_TABLE)
            .join(holidays, 'FlightDate', 'Date')
            .group_by('Holiday')
            .aggregate('count', alias='num_flights')
            .sort('num_flights', descending=True))


# Query dictionary with metadata, SQL templates and builder equivalents
QUERIES = {
    "richmond_departures": {
        "name": "Departures from Richmond, VA",
        "description": "First ten flights leaving Richmond, VA",
        "category": "Exploration",
        "use_case": "Sanity check - does the staged table look right?",
        "ordered": False,
        "sql": """
            SELECT *
            FROM {flights_table}
            WHERE OriginCityName = 'Richmond, VA'
            LIMIT 10
        """,
        "builder": _richmond_departures
    },

    "avg_delay_by_carrier_code": {
        "name": "Average Departure Delay by Carrier Code",
        "description": "Mean departure delay per marketing carrier, worst first",
        "category": "Delay Analysis",
        "use_case": "Which carriers are most often late?",
        "ordered": True,
        "sql": """
            SELECT Marketing_Airline_Network, AVG(DepDelayMinutes) AS avg_dep_delay
            FROM {flights_table}
            GROUP BY Marketing_Airline_Network
            ORDER BY avg_dep_delay DESC
        """,
        "builder": _avg_delay_by_carrier_code
    },

    "avg_delay_by_carrier_name": {
        "name": "Average Departure Delay by Carrier Name",
        "description": "Mean departure delay per carrier, labelled with carrier names",
        "category": "Delay Analysis",
        "use_case": "Same ranking as by code, readable by non-specialists",
        "ordered": True,
        "sql": """
            SELECT c.CarrierName, AVG(f.DepDelayMinutes) AS avg_dep_delay
            FROM {flights_table} f
            LEFT JOIN {carrier_table} c ON f.Marketing_Airline_Network = c.Code
            GROUP BY CarrierName
            ORDER BY avg_dep_delay DESC
        """,
        "builder": _avg_delay_by_carrier_name
    },

    "flights_by_holiday": {
        "name": "Flights by Holiday",
        "description": "Number of flights on each holiday (null for regular days)",
        "category": "Calendar Analysis",
        "use_case": "How much traffic falls on holidays?",
        "ordered": False,
        "sql": """
            SELECT h.Holiday, COUNT(*) AS num_flights
            FROM {flights_table} f
            LEFT JOIN {holiday_table} h ON f.FlightDate = h.Date
            GROUP BY Holiday
            ORDER BY num_flights DESC
        """,
        "builder": _flights_by_holiday
    },

    "avg_delay_by_month_2022": {
        "name": "Average Departure Delay by Month (2022)",
        "description": "Mean departure delay for each month of 2022",
        "category": "Delay Analysis",
        "use_case": "Seasonality - which months are worst for delays?",
        "ordered": True,
        "sql": """
            SELECT month(CAST(FlightDate AS DATE)) AS flight_month, AVG(DepDelayMinutes) AS avg_dep_delay
            FROM {flights_table}
            WHERE CAST(FlightDate AS DATE) BETWEEN DATE '2022-01-01' AND DATE '2022-12-31'
            GROUP BY flight_month
            ORDER BY flight_month
        """,
        "builder": None
    }
}


def _lookup(query_key: str) -> dict:
    if query_key not in QUERIES:
        raise KeyError(f"Query '{query_key}' not found. Available queries: {list(QUERIES.keys())}")
    return QUERIES[query_key]


def get_query(query_key: str, flights_table: str = FLIGHTS_TABLE,
              carrier_table: str = CARRIER_TABLE, holiday_table: str = HOLIDAY_TABLE) -> str:
    """
    Get a formatted SQL query.

    Args:
        query_key: The key identifying the query (e.g., 'avg_delay_by_carrier_code')
        flights_table: Flights table name to substitute in the query
        carrier_table: Carrier lookup table name
        holiday_table: Holiday calendar table name

    Returns:
        Formatted SQL query string

    Raises:
        KeyError: If query_key is not found
    """
    return _lookup(query_key)['sql'].format(
        flights_table=flights_table,
        carrier_table=carrier_table,
        holiday_table=holiday_table
    )


def get_builder(query_key: str) -> Optional[Callable]:
    """
    Get the function that composes the query as a QueryExpression.

    Returns:
        A callable taking a DatabaseConnection, or None for SQL-only queries

    Raises:
        KeyError: If query_key is not found
    """
    return _lookup(query_key)['builder']


def build_query(query_key: str, conn) -> QueryExpression:
    """
    Compose a catalog query against a connection.

    Args:
        query_key: The key identifying the query
        conn: DatabaseConnection with the tables staged

    Returns:
        QueryExpression bound to conn

    Raises:
        KeyError: If query_key is not found
        ValueError: If the query only exists as SQL text
    """
    builder = get_builder(query_key)
    if builder is None:
        raise ValueError(f"Query '{query_key}' has no builder form")
    return builder(conn)


def get_query_info(query_key: str) -> dict:
    """
    Get metadata about a query.

    Args:
        query_key: The key identifying the query

    Returns:
        Dictionary with query metadata (name, description, category, use_case, ordered)

    Raises:
        KeyError: If query_key is not found
    """
    return {k: v for k, v in _lookup(query_key).items() if k not in ('sql', 'builder')}


def list_queries() -> list:
    """
    Get a list of all available query keys.
    """
    return list(QUERIES.keys())


def list_queries_by_category() -> Dict[str, list]:
    """
    Get queries organized by category.

    Returns:
        Dictionary mapping category names to lists of query keys
    """
    categories = {}
    for key, info in QUERIES.items():
        category = info.get('category', 'Uncategorized')
        categories.setdefault(category, []).append(key)
    return categories


def print_query_catalog():
    """
    Print a formatted catalog of all available queries.
    """
    print("=" * 80)
    print("FlightDuck Query Catalog")
    print("=" * 80)
    print()

    for idx, (key, info) in enumerate(QUERIES.items(), 1):
        forms = "SQL + builder" if info['builder'] is not None else "SQL only"
        print(f"{idx}. {info['name']} (Key: {key})")
        print(f"   Category: {info['category']}")
        print(f"   Description: {info['description']}")
        print(f"   Use Case: {info['use_case']}")
        print(f"   Forms: {forms}")
        print()


if __name__ == "__main__":
    print_query_catalog()

    print("=" * 80)
    print("Queries by Category")
    print("=" * 80)
    print()

    for category, query_keys in list_queries_by_category().items():
        print(f"{category}:")
        for key in query_keys:
            print(f"  - {key}: {QUERIES[key]['name']}")
        print()
