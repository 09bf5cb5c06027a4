import numpy as np
import pandas as pd
import pytest

from flightduck.config import CARRIER_TABLE, FLIGHTS_TABLE, HOLIDAY_TABLE
from flightduck.db_connector import DatabaseConnection


@pytest.fixture
def carriers():
    return pd.DataFrame({
        'Code': ['AA', 'DL', 'UA'],
        'CarrierName': ['American', 'Delta', 'United']
    })


@pytest.fixture
def holidays():
    return pd.DataFrame({
        'Date': pd.to_datetime(['2022-07-04', '2022-12-25']),
        'Holiday': ['Independence Day', 'Christmas Day']
    })


@pytest.fixture
def flights():
    # Mean delay by carrier: ZZ 100, UA 21, AA 20, DL 5 (DL has one null delay)
    return pd.DataFrame({
        'FlightDate': pd.to_datetime([
            '2022-07-04', '2022-07-05', '2022-12-25', '2023-01-01',
            '2022-03-15', '2022-03-16', '2022-07-04', '2022-08-01'
        ]),
        'Marketing_Airline_Network': ['AA', 'AA', 'DL', 'DL', 'UA', 'ZZ', 'UA', 'AA'],
        'OriginCityName': [
            'Richmond, VA', 'Atlanta, GA', 'Richmond, VA', 'Chicago, IL',
            'Richmond, VA', 'Denver, CO', 'Chicago, IL', 'Atlanta, GA'
        ],
        'DestCityName': [
            'Atlanta, GA', 'Richmond, VA', 'Atlanta, GA', 'Richmond, VA',
            'Chicago, IL', 'Richmond, VA', 'Richmond, VA', 'Denver, CO'
        ],
        'DepDelayMinutes': [10.0, 20.0, 5.0, np.nan, 40.0, 100.0, 2.0, 30.0]
    })


@pytest.fixture
def lookup_workbook(tmp_path, flights, carriers, holidays):
    path = tmp_path / 'lookup_tables.xlsx'
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        flights.to_excel(writer, sheet_name='sample', index=False)
        carriers.to_excel(writer, sheet_name='carriers', index=False)
        holidays.to_excel(writer, sheet_name='holidays', index=False)
    return path


@pytest.fixture
def flights_parquet(tmp_path, flights):
    path = tmp_path / 'flights.parquet'
    flights.to_parquet(path, index=False)
    return path


@pytest.fixture
def conn(flights, carriers, holidays):
    with DatabaseConnection(database=':memory:') as db:
        db.load_table(CARRIER_TABLE, carriers)
        db.load_table(HOLIDAY_TABLE, holidays)
        db.load_table(FLIGHTS_TABLE, flights)
        yield db
