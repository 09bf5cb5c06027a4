"""
Configuration and Settings

This module contains all configuration settings for the FlightDuck project,
including source file paths, workbook schemas, staged table names, chart
styling, benchmark settings, and logging.
"""

import logging
import os
from pathlib import Path

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Data paths
DATA_DIR = Path(os.getenv('FLIGHTDUCK_DATA_DIR', PROJECT_ROOT / 'data'))
LOOKUP_TABLES_PATH = Path(os.getenv('FLIGHTDUCK_LOOKUP_PATH', DATA_DIR / 'lookup_tables.xlsx'))
FLIGHTS_PATH = Path(os.getenv('FLIGHTDUCK_FLIGHTS_PATH', DATA_DIR / 'flight_delay_2022_2023.parquet'))

# Output paths
RESULTS_DIR = Path(os.getenv('FLIGHTDUCK_RESULTS_DIR', PROJECT_ROOT / 'results'))
CHARTS_DIR = RESULTS_DIR / 'charts'
BENCHMARK_DIR = RESULTS_DIR / 'benchmarks'
TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'

# Database configuration (":memory:" creates a transient in-process database)
DB_CONFIG = {
    'database': os.getenv('DB_PATH', ':memory:'),
    'read_only': False
}

# Staged table names
CARRIER_TABLE = 'carrier_tbl'
HOLIDAY_TABLE = 'holiday_tbl'
FLIGHTS_TABLE = 'flights'

# Flight record schema shared by the sample sheet and the Parquet fact file
FLIGHT_COLUMNS = [
    'FlightDate',
    'Marketing_Airline_Network',
    'OriginCityName',
    'DestCityName',
    'DepDelayMinutes'
]

# Workbook sections and the columns each one must carry
SHEET_SCHEMAS = {
    'sample': FLIGHT_COLUMNS,
    'carriers': ['Code', 'CarrierName'],
    'holidays': ['Date', 'Holiday']
}

# Columns parsed as dates on load so join keys from both sources line up
DATE_COLUMNS = ['FlightDate', 'Date']

# Day-of-week labels, Sunday first
DAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

# Chart settings
CHART_CONFIG = {
    'bar_color': 'darkblue',
    'template': 'plotly_white',
    'label_decimals': 1,
    'text_size': 10,
    'height': 600,
    'missing_label': '(unknown)'
}

# Benchmark settings
BENCHMARK_CONFIG = {
    'warmup_runs': 1,          # Number of warmup runs before timing
    'test_runs': 3,            # Number of timed runs (take average)
    'tolerance': 0.001         # Float tolerance when comparing result sets
}

# Logging configuration
LOGGING_CONFIG = {
    'level': os.getenv('LOG_LEVEL', 'INFO'),
    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    'datefmt': '%Y-%m-%d %H:%M:%S'
}


def setup_logging() -> None:
    """
    Configure the root logger from LOGGING_CONFIG.
    """
    logging.basicConfig(
        level=LOGGING_CONFIG['level'],
        format=LOGGING_CONFIG['format'],
        datefmt=LOGGING_CONFIG['datefmt']
    )


def validate_config():
    """
    Validate configuration settings and create necessary directories.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Create directories if they don't exist
    for directory in [RESULTS_DIR, CHARTS_DIR, BENCHMARK_DIR]:
        directory.mkdir(parents=True, exist_ok=True)

    if not DB_CONFIG.get('database'):
        raise ValueError("DB_CONFIG['database'] must be a file path or ':memory:'")

    if BENCHMARK_CONFIG['test_runs'] < 1:
        raise ValueError("BENCHMARK_CONFIG['test_runs'] must be at least 1")

    for section, columns in SHEET_SCHEMAS.items():
        if not columns:
            raise ValueError(f"No expected columns configured for section '{section}'")

    return True


if __name__ == "__main__":
    print("FlightDuck Configuration")
    print("=" * 50)
    print(f"Database: {DB_CONFIG['database']}")
    print(f"Lookup workbook: {LOOKUP_TABLES_PATH}")
    print(f"Flights file: {FLIGHTS_PATH}")
    print(f"Tables: {CARRIER_TABLE}, {HOLIDAY_TABLE}, {FLIGHTS_TABLE}")
    print(f"Results Directory: {RESULTS_DIR}")
    print("\nValidating configuration...")

    try:
        validate_config()
        print("Configuration valid!")
    except ValueError as e:
        print(f"Configuration error: {e}")
