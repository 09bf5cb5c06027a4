"""
Flight Delay Walkthrough Pipeline

Runs the whole walkthrough end to end:

1. Load the lookup workbook and the Parquet flight records
2. Enrich the sample with carrier names, holidays and day of week
3. Stage the lookup tables and flights in an in-memory database
4. Query the flights with raw SQL and with composed queries
5. Summarize mean departure delay by carrier code and by carrier name,
   optionally saving bar charts

The database connection is opened once for the run and closed on every
exit path.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from flightduck.config import (
    CARRIER_TABLE, CHARTS_DIR, FLIGHTS_PATH, FLIGHTS_TABLE, HOLIDAY_TABLE,
    LOOKUP_TABLES_PATH, setup_logging, validate_config
)
from flightduck.data_enrichment import FlightDataEnricher, count_by_holiday
from flightduck.db_connector import DatabaseConnection
from flightduck.exceptions import FlightDuckError
from flightduck.load_data import DataLoader
from flightduck.queries import build_query, get_query
from flightduck.reporting import format_summary, render_bar_chart

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Tables produced by one pipeline run."""

    sample: pd.DataFrame
    holiday_counts: pd.DataFrame
    tables: list
    richmond_sql: pd.DataFrame
    richmond_composed: pd.DataFrame
    delay_by_code: pd.DataFrame
    delay_by_name: pd.DataFrame
    delay_by_name_sql: pd.DataFrame
    generated_sql: Dict[str, str] = field(default_factory=dict)
    charts: Dict[str, Path] = field(default_factory=dict)


class FlightDelayPipeline:
    """
    Loader -> Enricher -> Query engine -> Reporter, in one run.

    Attributes:
        loader (DataLoader): Reads the source files
        output_dir (Path): Where charts are written; None disables charts
    """

    def __init__(self, lookup_path=LOOKUP_TABLES_PATH, flights_path=FLIGHTS_PATH,
                 output_dir: Optional[Path] = None, database: Optional[str] = None):
        """
        Initialize the pipeline.

        Args:
            lookup_path: Path to the lookup workbook
            flights_path: Path to the Parquet flight records
            output_dir: Directory for chart files (None: no charts)
            database: Database path override (default from DB_CONFIG)
        """
        self.loader = DataLoader(lookup_path, flights_path)
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.database = database

    def stage_tables(self, conn: DatabaseConnection, lookups: Dict[str, pd.DataFrame],
                     flights: pd.DataFrame) -> list:
        """Write the lookup tables and the flights into the database."""
        conn.load_table(CARRIER_TABLE, lookups['carriers'])
        conn.load_table(HOLIDAY_TABLE, lookups['holidays'])
        conn.load_table(FLIGHTS_TABLE, flights)
        return conn.list_tables()

    def run(self) -> PipelineResult:
        """
        Execute the full walkthrough.

        Returns:
            PipelineResult with every intermediate table

        Raises:
            SourceNotFound, SchemaMismatch: If a source cannot be loaded
            QueryError: If a query fails
        """
        logger.info("Step 1: loading sources")
        lookups = self.loader.load_lookup_tables()
        flights = self.loader.load_flights()

        logger.info("Step 2: enriching the sample")
        enricher = FlightDataEnricher(lookups['carriers'], lookups['holidays'])
        sample = enricher.enrich(lookups['sample'])
        holiday_counts = count_by_holiday(sample)

        generated_sql = {}
        charts = {}

        with DatabaseConnection(database=self.database) as conn:
            logger.info("Step 3: staging tables")
            tables = self.stage_tables(conn, lookups, flights)

            logger.info("Step 4: querying with SQL and with composed queries")
            richmond_sql = conn.execute_query(get_query('richmond_departures'))
            richmond = build_query('richmond_departures', conn)
            generated_sql['richmond_departures'] = richmond.explain()
            richmond_composed = richmond.materialize()

            logger.info("Step 5: summarizing departure delays")
            by_code = build_query('avg_delay_by_carrier_code', conn)
            generated_sql['avg_delay_by_carrier_code'] = by_code.explain()
            delay_by_code = by_code.materialize()

            by_name = build_query('avg_delay_by_carrier_name', conn)
            generated_sql['avg_delay_by_carrier_name'] = by_name.explain()
            delay_by_name = by_name.materialize()
            delay_by_name_sql = conn.execute_query(get_query('avg_delay_by_carrier_name'))

        if self.output_dir is not None:
            charts['by_code'] = self.output_dir / 'avg_delay_by_carrier_code.html'
            render_bar_chart(delay_by_code, 'Marketing_Airline_Network', 'avg_dep_delay',
                             "Average Departure Delay by Airline",
                             x_label="Average Departure Delay (minutes)",
                             y_label="Carrier Code", output_path=charts['by_code'])

            charts['by_name'] = self.output_dir / 'avg_delay_by_carrier_name.html'
            render_bar_chart(delay_by_name, 'CarrierName', 'avg_dep_delay',
                             "Average Departure Delay by Airline",
                             x_label="Average Departure Delay (minutes)",
                             y_label="Carrier Name", output_path=charts['by_name'])

        return PipelineResult(
            sample=sample,
            holiday_counts=holiday_counts,
            tables=tables,
            richmond_sql=richmond_sql,
            richmond_composed=richmond_composed,
            delay_by_code=delay_by_code,
            delay_by_name=delay_by_name,
            delay_by_name_sql=delay_by_name_sql,
            generated_sql=generated_sql,
            charts=charts
        )


def print_report(result: PipelineResult) -> None:
    """Print the walkthrough's tables and generated SQL."""
    print("=" * 70)
    print("Flight Delay Walkthrough")
    print("=" * 70)
    print()
    print(f"Tables in database: {', '.join(result.tables)}")
    print()
    print("Sample flights by holiday:")
    print(format_summary(result.holiday_counts))
    print()

    for key, sql in result.generated_sql.items():
        print(f"Generated SQL ({key}):")
        print(sql)
        print()

    print("Average departure delay by carrier code:")
    print(format_summary(result.delay_by_code))
    print()
    print("Average departure delay by carrier name:")
    print(format_summary(result.delay_by_name))
    print()

    for name, path in result.charts.items():
        print(f"Chart ({name}): {path}")


def main():
    """
    Main entry point for the walkthrough.

    Source paths come from FLIGHTDUCK_LOOKUP_PATH and FLIGHTDUCK_FLIGHTS_PATH.
    """
    setup_logging()
    validate_config()

    pipeline = FlightDelayPipeline(output_dir=CHARTS_DIR)
    try:
        result = pipeline.run()
    except FlightDuckError as e:
        logger.error("Pipeline failed: %s", e)
        sys.exit(1)

    print_report(result)
    sys.exit(0)


if __name__ == "__main__":
    main()
