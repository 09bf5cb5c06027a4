"""
Data Loading Module

This module reads the walkthrough's source files into pandas DataFrames:
the lookup workbook (sample records, carrier names, holiday calendar) and
the large Parquet file of flight records. Every section is checked against
its expected column schema before it is handed to the rest of the pipeline.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd
import pyarrow.parquet as pq

from flightduck.config import (
    DATE_COLUMNS, FLIGHT_COLUMNS, FLIGHTS_PATH, LOOKUP_TABLES_PATH, SHEET_SCHEMAS
)
from flightduck.exceptions import SchemaMismatch, SourceNotFound
from flightduck.utils import format_number

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def validate_columns(df: pd.DataFrame, expected: Iterable[str], source: str) -> None:
    """
    Check that a DataFrame carries every expected column.

    Args:
        df: Loaded table
        expected: Column names that must be present
        source: Description of where the table came from (used in the error)

    Raises:
        SchemaMismatch: If any expected column is absent
    """
    missing = [column for column in expected if column not in df.columns]
    if missing:
        raise SchemaMismatch(source, missing)


def normalize_dates(df: pd.DataFrame) -> pd.DataFrame:
    """
    Parse known date columns so workbook and Parquet keys compare equal.

    Args:
        df: Loaded table

    Returns:
        The same DataFrame with DATE_COLUMNS converted to datetime64
    """
    for column in DATE_COLUMNS:
        if column in df.columns:
            df[column] = pd.to_datetime(df[column], errors='coerce').astype('datetime64[ns]')
    return df


class DataLoader:
    """
    Loads lookup sections from an Excel workbook and flight records from Parquet.

    Attributes:
        lookup_path (Path): Path to the lookup workbook
        flights_path (Path): Path to the Parquet fact file
    """

    def __init__(self, lookup_path: PathLike = LOOKUP_TABLES_PATH,
                 flights_path: PathLike = FLIGHTS_PATH):
        """
        Initialize the data loader.

        Paths are resolved lazily, so a loader can be created before the
        files exist; a missing file is reported when it is read.

        Args:
            lookup_path: Path to the lookup workbook (.xlsx)
            flights_path: Path to the flight records file (.parquet)
        """
        self.lookup_path = Path(lookup_path)
        self.flights_path = Path(flights_path)

    @staticmethod
    def _require(path: Path) -> None:
        if not path.is_file():
            raise SourceNotFound(path)

    def load_lookup_tables(self, sections: Optional[Iterable[str]] = None) -> Dict[str, pd.DataFrame]:
        """
        Read named sections (worksheets) from the lookup workbook.

        Args:
            sections: Sheet names to read (default: every section in SHEET_SCHEMAS)

        Returns:
            Dictionary mapping section name to its DataFrame

        Raises:
            SourceNotFound: If the workbook does not exist
            SchemaMismatch: If a section or one of its expected columns is missing
        """
        self._require(self.lookup_path)
        sections = list(sections) if sections is not None else list(SHEET_SCHEMAS)

        logger.info("Loading sections %s from %s", sections, self.lookup_path)

        with pd.ExcelFile(self.lookup_path, engine='openpyxl') as workbook:
            missing = [name for name in sections if name not in workbook.sheet_names]
            if missing:
                raise SchemaMismatch(str(self.lookup_path), missing, kind='missing sections')

            tables = {}
            for name in sections:
                df = workbook.parse(sheet_name=name)
                validate_columns(df, SHEET_SCHEMAS.get(name, []), f"{self.lookup_path}[{name}]")
                tables[name] = normalize_dates(df)
                logger.info("  %s: %s rows", name, format_number(len(df)))

        return tables

    def load_flights(self, columns: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Read the Parquet file of flight records.

        Args:
            columns: Optional subset of columns to read; when given, these
                are the columns that must exist instead of FLIGHT_COLUMNS

        Returns:
            DataFrame of flight records

        Raises:
            SourceNotFound: If the Parquet file does not exist
            SchemaMismatch: If expected flight columns are missing
        """
        self._require(self.flights_path)

        logger.info("Loading flight records from %s", self.flights_path)

        # Check the file schema before reading so a bad column list fails fast
        schema = pq.read_schema(self.flights_path)
        expected = list(columns) if columns is not None else FLIGHT_COLUMNS
        missing = [column for column in expected if column not in schema.names]
        if missing:
            raise SchemaMismatch(str(self.flights_path), missing)

        flights = pd.read_parquet(self.flights_path, engine='pyarrow', columns=columns)
        flights = normalize_dates(flights)

        logger.info("  Loaded %s flight records", format_number(len(flights)))
        return flights


def load_lookup_tables(path: PathLike, sections: Optional[Iterable[str]] = None) -> Dict[str, pd.DataFrame]:
    """Read lookup sections from a workbook. See DataLoader.load_lookup_tables."""
    return DataLoader(lookup_path=path).load_lookup_tables(sections)


def load_flights(path: PathLike, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Read flight records from a Parquet file. See DataLoader.load_flights."""
    return DataLoader(flights_path=path).load_flights(columns)
