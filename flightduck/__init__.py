"""
FlightDuck Package

This package contains the modules of the FlightDuck flight delay walkthrough:
- config: File paths, table names, schemas and settings
- exceptions: Loader and query engine error types
- load_data: Lookup workbook and Parquet loading
- data_enrichment: Carrier, holiday and day-of-week enrichment
- db_connector: DuckDB connection management
- query_builder: Composable queries translated to SQL
- queries: Analytical query catalog
- reporting: Delay summaries, tables and bar charts
- benchmark: Raw SQL vs composed query comparison
- pipeline: End-to-end walkthrough
- utils: Utility functions for formatting and comparisons
"""

__version__ = "1.0.0"
__author__ = "FlightDuck Team"
