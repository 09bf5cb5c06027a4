"""
Utility Functions

This module provides utility functions for the FlightDuck project,
including time formatting, result comparisons, and SQL text helpers.
"""

import math
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd


def format_time(seconds: float) -> str:
    """
    Format time duration in human-readable format.

    Args:
        seconds: Time duration in seconds

    Returns:
        Formatted string (e.g., "500ms", "2.3s", "1.5μs")

    Examples:
        >>> format_time(0.0005)
        '500μs'
        >>> format_time(0.5)
        '500ms'
        >>> format_time(2.345)
        '2.345s'
    """
    if seconds < 0.001:
        return f"{seconds * 1000000:.0f}μs"
    elif seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    else:
        return f"{seconds:.3f}s"


def calculate_speedup(time1: float, time2: float) -> float:
    """
    Calculate speedup ratio between two execution times.

    Args:
        time1: First execution time (baseline)
        time2: Second execution time

    Returns:
        Speedup ratio (time1 / time2)

    Examples:
        >>> calculate_speedup(10.0, 2.0)
        5.0
        >>> calculate_speedup(5.0, 5.0)
        1.0
    """
    if time2 == 0:
        return float('inf')
    return time1 / time2


def format_number(number: int) -> str:
    """
    Format large numbers with thousand separators.

    Examples:
        >>> format_number(1234567)
        '1,234,567'
    """
    return f"{number:,}"


def compare_results(results1: pd.DataFrame, results2: pd.DataFrame,
                    tolerance: float = 0.001, ignore_order: bool = True) -> bool:
    """
    Compare two result tables for equality (with floating point tolerance).

    Column names and order must match. Nulls only match nulls.

    Args:
        results1: First result table
        results2: Second result table
        tolerance: Tolerance for floating point comparison
        ignore_order: Sort both tables before comparing rows

    Returns:
        True if results match, False otherwise
    """
    if results1 is None or results2 is None:
        return False

    if list(results1.columns) != list(results2.columns):
        return False

    if len(results1) != len(results2):
        return False

    left = results1.reset_index(drop=True)
    right = results2.reset_index(drop=True)

    # Sort both result sets to ensure order doesn't matter
    if ignore_order and len(left.columns) > 0:
        columns = list(left.columns)
        left = left.sort_values(by=columns, na_position='last', kind='mergesort').reset_index(drop=True)
        right = right.sort_values(by=columns, na_position='last', kind='mergesort').reset_index(drop=True)

    for column in left.columns:
        lhs, rhs = left[column], right[column]
        lhs_na = lhs.isna().to_numpy()
        rhs_na = rhs.isna().to_numpy()
        if not (lhs_na == rhs_na).all():
            return False

        if pd.api.types.is_numeric_dtype(lhs) and pd.api.types.is_numeric_dtype(rhs):
            values1 = lhs.to_numpy(dtype=float, na_value=np.nan)
            values2 = rhs.to_numpy(dtype=float, na_value=np.nan)
            if not np.allclose(values1, values2, atol=tolerance, equal_nan=True):
                return False
        elif not (lhs[~lhs_na].to_numpy() == rhs[~rhs_na].to_numpy()).all():
            return False

    return True


def quote_identifier(name: str) -> str:
    """
    Quote a table or column name for use in SQL text.

    Examples:
        >>> quote_identifier('flights')
        '"flights"'
        >>> quote_identifier('odd"name')
        '"odd""name"'
    """
    return '"' + str(name).replace('"', '""') + '"'


def sql_literal(value: Any) -> str:
    """
    Render a Python value as a SQL literal.

    Examples:
        >>> sql_literal("Richmond, VA")
        "'Richmond, VA'"
        >>> sql_literal(None)
        'NULL'
        >>> sql_literal(15)
        '15'
    """
    if value is None:
        return 'NULL'
    if isinstance(value, float) and math.isnan(value):
        return 'NULL'
    if isinstance(value, (bool, np.bool_)):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, float, np.integer, np.floating)):
        return repr(value.item() if isinstance(value, np.generic) else value)
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return f"TIMESTAMP '{value.isoformat(sep=' ')}'"
    if isinstance(value, date):
        return f"DATE '{value.isoformat()}'"
    return "'" + str(value).replace("'", "''") + "'"


def round_label(value: Any, decimals: int = 1) -> str:
    """
    Format a chart value label, leaving missing values blank.

    Examples:
        >>> round_label(15.04)
        '15.0'
        >>> round_label(None)
        ''
    """
    if value is None or pd.isna(value):
        return ''
    return f"{round(float(value), decimals):.{decimals}f}"


if __name__ == "__main__":
    print("Testing Utility Functions")
    print("=" * 50)

    print("\nTime Formatting:")
    print(f"  0.0005s -> {format_time(0.0005)}")
    print(f"  2.345s -> {format_time(2.345)}")

    print("\nSQL Helpers:")
    print(f"  {quote_identifier('Marketing_Airline_Network')}")
    print(f"  {sql_literal('Richmond, VA')}")
    print(f"  {sql_literal(date(2022, 1, 1))}")

    print("\nResult Comparison:")
    a = pd.DataFrame({'k': ['AA', 'DL'], 'v': [15.0, 5.0]})
    b = pd.DataFrame({'k': ['DL', 'AA'], 'v': [5.0, 15.0004]})
    print(f"  match ignoring order -> {compare_results(a, b)}")
