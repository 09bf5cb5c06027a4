import pandas as pd
import pytest

from flightduck.exceptions import SchemaMismatch, SourceNotFound
from flightduck.load_data import DataLoader, load_flights, load_lookup_tables


def test_load_lookup_tables_reads_every_section(lookup_workbook):
    tables = load_lookup_tables(lookup_workbook)

    assert set(tables) == {'sample', 'carriers', 'holidays'}
    assert len(tables['sample']) == 8
    assert tables['carriers']['Code'].tolist() == ['AA', 'DL', 'UA']
    assert pd.api.types.is_datetime64_any_dtype(tables['holidays']['Date'])
    assert pd.api.types.is_datetime64_any_dtype(tables['sample']['FlightDate'])


def test_load_lookup_tables_subset(lookup_workbook):
    tables = load_lookup_tables(lookup_workbook, sections=['carriers'])

    assert list(tables) == ['carriers']


def test_missing_workbook_raises_source_not_found(tmp_path):
    missing = tmp_path / 'nope.xlsx'

    with pytest.raises(SourceNotFound) as excinfo:
        load_lookup_tables(missing)

    assert excinfo.value.path == missing


def test_missing_section_raises_schema_mismatch(lookup_workbook):
    with pytest.raises(SchemaMismatch) as excinfo:
        load_lookup_tables(lookup_workbook, sections=['carriers', 'airports'])

    assert excinfo.value.missing == ['airports']
    assert excinfo.value.kind == 'missing sections'


def test_section_without_expected_columns_raises(tmp_path):
    path = tmp_path / 'bad.xlsx'
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        pd.DataFrame({'Code': ['AA']}).to_excel(writer, sheet_name='carriers', index=False)

    with pytest.raises(SchemaMismatch) as excinfo:
        load_lookup_tables(path, sections=['carriers'])

    assert excinfo.value.missing == ['CarrierName']
    assert 'carriers' in str(excinfo.value)


def test_load_flights(flights_parquet, flights):
    loaded = load_flights(flights_parquet)

    assert len(loaded) == len(flights)
    assert loaded['DepDelayMinutes'].isna().sum() == 1
    assert pd.api.types.is_datetime64_any_dtype(loaded['FlightDate'])


def test_load_flights_column_subset(flights_parquet):
    loaded = load_flights(flights_parquet, columns=['Marketing_Airline_Network', 'DepDelayMinutes'])

    assert list(loaded.columns) == ['Marketing_Airline_Network', 'DepDelayMinutes']


def test_load_flights_missing_file(tmp_path):
    with pytest.raises(SourceNotFound):
        load_flights(tmp_path / 'flights.parquet')


def test_load_flights_schema_mismatch(tmp_path, flights):
    path = tmp_path / 'partial.parquet'
    flights.drop(columns=['DepDelayMinutes']).to_parquet(path, index=False)

    with pytest.raises(SchemaMismatch) as excinfo:
        DataLoader(flights_path=path).load_flights()

    assert excinfo.value.missing == ['DepDelayMinutes']


def test_load_flights_empty_file(tmp_path, flights):
    path = tmp_path / 'empty.parquet'
    flights.iloc[0:0].to_parquet(path, index=False)

    loaded = load_flights(path)

    assert loaded.empty
    assert 'DepDelayMinutes' in loaded.columns
