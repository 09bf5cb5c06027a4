"""
Data Enrichment Module

This module enriches flight records with lookup attributes:
- Carrier display names (left join on carrier code)
- Holiday labels (left join on flight date)
- Day of week derived from the flight date

Joins are left-outer: every input row survives, and rows without a lookup
match carry nulls in the attached columns.
"""

import logging
from typing import List, Optional

import pandas as pd

from flightduck.config import DAY_LABELS
from flightduck.exceptions import SchemaMismatch

logger = logging.getLogger(__name__)


def join_left(base: pd.DataFrame, lookup: pd.DataFrame,
              base_key: str, lookup_key: Optional[str] = None) -> pd.DataFrame:
    """
    Left join a lookup table onto a base table.

    Every non-key lookup column is attached to each base row whose key
    matches; unmatched rows get nulls. When the keys are named differently
    the lookup key column is dropped from the result, so the output keeps
    the base table's key only.

    Args:
        base: Table whose rows are all kept, in their original order
        lookup: Reference table with unique keys
        base_key: Join column in the base table
        lookup_key: Join column in the lookup table (default: base_key)

    Returns:
        DataFrame with exactly len(base) rows

    Raises:
        SchemaMismatch: If a key column is missing or lookup keys repeat
    """
    lookup_key = lookup_key or base_key

    if base_key not in base.columns:
        raise SchemaMismatch('base table', [base_key])
    if lookup_key not in lookup.columns:
        raise SchemaMismatch('lookup table', [lookup_key])

    # Null keys never match anything
    lookup = lookup[lookup[lookup_key].notna()]

    duplicated = lookup[lookup_key][lookup[lookup_key].duplicated()]
    if not duplicated.empty:
        raise SchemaMismatch('lookup table', duplicated.unique().tolist(), kind='duplicate keys')

    if base_key == lookup_key:
        joined = base.merge(lookup, how='left', on=base_key, suffixes=('', '_lookup'))
    else:
        joined = base.merge(lookup, how='left', left_on=base_key, right_on=lookup_key,
                            suffixes=('', '_lookup'))
        if lookup_key not in base.columns:
            joined = joined.drop(columns=lookup_key)

    return joined


def derive_day_of_week(value) -> str:
    """
    Map a calendar date to its day-of-week label.

    Args:
        value: A date, datetime, pandas Timestamp, or ISO date string

    Returns:
        One of 'Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'

    Raises:
        ValueError: If the value is not a valid calendar date

    Examples:
        >>> derive_day_of_week('2023-01-01')
        'Sun'
    """
    return DAY_LABELS[day_of_week_number(value) - 1]


def day_of_week_number(value) -> int:
    """
    Map a calendar date to its day number, Sunday=1 through Saturday=7.

    Examples:
        >>> day_of_week_number('2023-01-07')
        7
    """
    timestamp = pd.Timestamp(value)
    if pd.isna(timestamp):
        raise ValueError(f"Not a valid calendar date: {value!r}")
    # pandas counts Monday as 0
    return (timestamp.dayofweek + 1) % 7 + 1


def count_by_holiday(df: pd.DataFrame, holiday_column: str = 'Holiday') -> pd.DataFrame:
    """
    Count flights per holiday label; non-holiday flights form a null group.

    Args:
        df: Flight records already joined to the holiday calendar
        holiday_column: Column holding the holiday label

    Returns:
        DataFrame with columns [holiday_column, 'num_flights']
    """
    if holiday_column not in df.columns:
        raise SchemaMismatch('flight records', [holiday_column])

    return (
        df.groupby(holiday_column, dropna=False, sort=True)
        .size()
        .reset_index(name='num_flights')
    )


def preview(df: pd.DataFrame, columns: Optional[List[str]] = None, n: int = 5) -> pd.DataFrame:
    """Return the first n rows, optionally restricted to some columns."""
    if columns is not None:
        df = df[columns]
    return df.head(n)


class FlightDataEnricher:
    """
    Enriches flight records with carrier names, holidays, and day of week.

    Attributes:
        carriers: Carrier lookup table (Code, CarrierName)
        holidays: Holiday calendar (Date, Holiday)
    """

    def __init__(self, carriers: pd.DataFrame, holidays: pd.DataFrame,
                 carrier_key: str = 'Code', holiday_key: str = 'Date'):
        """
        Initialize the enricher.

        Args:
            carriers: Carrier lookup table
            holidays: Holiday calendar
            carrier_key: Key column of the carrier lookup
            holiday_key: Key column of the holiday calendar
        """
        self.carriers = carriers
        self.holidays = holidays
        self.carrier_key = carrier_key
        self.holiday_key = holiday_key

    def add_carrier_names(self, df: pd.DataFrame,
                          key: str = 'Marketing_Airline_Network') -> pd.DataFrame:
        """Attach carrier names by carrier code."""
        enriched = join_left(df, self.carriers, key, self.carrier_key)
        matched = enriched['CarrierName'].notna().sum() if 'CarrierName' in enriched else 0
        logger.info("Carrier names matched for %d of %d rows", matched, len(enriched))
        return enriched

    def add_holidays(self, df: pd.DataFrame, key: str = 'FlightDate') -> pd.DataFrame:
        """Attach holiday labels by flight date."""
        return join_left(df, self.holidays, key, self.holiday_key)

    def add_day_of_week(self, df: pd.DataFrame, date_column: str = 'FlightDate',
                        column: str = 'DayofWeek') -> pd.DataFrame:
        """
        Add an ordered day-of-week label column derived from a date column.

        Args:
            df: Flight records
            date_column: Column holding the flight date
            column: Name of the new label column

        Returns:
            Copy of df with the label column; missing dates give null labels
        """
        if date_column not in df.columns:
            raise SchemaMismatch('flight records', [date_column])

        dates = pd.to_datetime(df[date_column], errors='coerce')
        codes = ((dates.dt.dayofweek + 1) % 7).fillna(-1).astype(int)

        enriched = df.copy()
        enriched[column] = pd.Categorical.from_codes(codes, categories=DAY_LABELS, ordered=True)
        return enriched

    def enrich(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Run every enrichment step on a table of flight records.

        Args:
            df: Flight records (typically the workbook's sample section)

        Returns:
            Records with CarrierName, Holiday, and DayofWeek columns
        """
        logger.info("Enriching %d flight records", len(df))

        enriched = self.add_carrier_names(df)
        enriched = self.add_holidays(enriched)
        enriched = self.add_day_of_week(enriched)

        return enriched
