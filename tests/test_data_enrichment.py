from datetime import date, timedelta

import numpy as np
import pandas as pd
import pytest

from flightduck.config import DAY_LABELS
from flightduck.data_enrichment import (
    FlightDataEnricher, count_by_holiday, day_of_week_number, derive_day_of_week, join_left,
    preview
)
from flightduck.exceptions import SchemaMismatch


@pytest.mark.parametrize('codes', [
    [],
    ['AA'],
    ['ZZ', 'ZZ', 'ZZ'],
    ['AA', 'DL', 'UA', 'AA', 'XX', None],
])
def test_join_left_preserves_row_count(codes, carriers):
    base = pd.DataFrame({'Marketing_Airline_Network': codes, 'n': range(len(codes))}, dtype=object)

    joined = join_left(base, carriers, 'Marketing_Airline_Network', 'Code')

    assert len(joined) == len(base)
    assert joined['n'].tolist() == base['n'].tolist()


def test_join_left_unmatched_rows_get_nulls(carriers):
    base = pd.DataFrame({'Marketing_Airline_Network': ['AA', 'ZZ', 'DL']})

    joined = join_left(base, carriers, 'Marketing_Airline_Network', 'Code')

    assert joined['CarrierName'].tolist()[0] == 'American'
    assert pd.isna(joined['CarrierName'].iloc[1])
    assert joined['CarrierName'].iloc[2] == 'Delta'


def test_join_left_drops_lookup_key_column(carriers):
    base = pd.DataFrame({'Marketing_Airline_Network': ['AA']})

    joined = join_left(base, carriers, 'Marketing_Airline_Network', 'Code')

    assert list(joined.columns) == ['Marketing_Airline_Network', 'CarrierName']


def test_join_left_same_key_name(carriers):
    base = pd.DataFrame({'Code': ['DL', 'UA']})

    joined = join_left(base, carriers, 'Code')

    assert joined['CarrierName'].tolist() == ['Delta', 'United']


def test_join_left_null_keys_never_match():
    base = pd.DataFrame({'key': ['a', None]})
    lookup = pd.DataFrame({'key': ['a', None], 'label': ['A', 'NULL-KEY']})

    joined = join_left(base, lookup, 'key')

    assert joined['label'].iloc[0] == 'A'
    assert pd.isna(joined['label'].iloc[1])


def test_join_left_rejects_duplicate_lookup_keys():
    base = pd.DataFrame({'key': ['a']})
    lookup = pd.DataFrame({'key': ['a', 'a'], 'label': ['A1', 'A2']})

    with pytest.raises(SchemaMismatch) as excinfo:
        join_left(base, lookup, 'key')

    assert excinfo.value.missing == ['a']


def test_join_left_missing_key_column(carriers):
    with pytest.raises(SchemaMismatch):
        join_left(pd.DataFrame({'x': [1]}), carriers, 'Marketing_Airline_Network', 'Code')


def test_derive_day_of_week_known_week():
    # 2023-01-01 was a Sunday
    week = [date(2023, 1, 1) + timedelta(days=i) for i in range(7)]

    assert [derive_day_of_week(d) for d in week] == DAY_LABELS
    assert [day_of_week_number(d) for d in week] == [1, 2, 3, 4, 5, 6, 7]


def test_derive_day_of_week_cycles_every_seven_days():
    start = date(2022, 2, 20)
    for offset in range(60):
        day = start + timedelta(days=offset)
        assert derive_day_of_week(day) == derive_day_of_week(day + timedelta(days=7))


def test_derive_day_of_week_accepts_common_date_types():
    assert derive_day_of_week('2022-07-04') == 'Mon'
    assert derive_day_of_week(pd.Timestamp('2022-07-04 18:30')) == 'Mon'


def test_derive_day_of_week_rejects_missing_date():
    with pytest.raises(ValueError):
        derive_day_of_week(None)


def test_add_day_of_week_is_ordered_label(carriers, holidays):
    df = pd.DataFrame({'FlightDate': pd.to_datetime(['2023-01-07', None, '2023-01-01'])})

    enriched = FlightDataEnricher(carriers, holidays).add_day_of_week(df)

    assert enriched['DayofWeek'].cat.ordered
    assert list(enriched['DayofWeek'].cat.categories) == DAY_LABELS
    assert enriched['DayofWeek'].iloc[0] == 'Sat'
    assert pd.isna(enriched['DayofWeek'].iloc[1])
    assert enriched['DayofWeek'].iloc[2] == 'Sun'
    assert 'DayofWeek' not in df.columns


def test_enrich_sample(flights, carriers, holidays):
    enriched = FlightDataEnricher(carriers, holidays).enrich(flights)

    assert len(enriched) == len(flights)
    assert {'CarrierName', 'Holiday', 'DayofWeek'} <= set(enriched.columns)
    assert enriched.loc[0, 'CarrierName'] == 'American'
    assert enriched.loc[0, 'Holiday'] == 'Independence Day'
    assert enriched.loc[0, 'DayofWeek'] == 'Mon'
    assert pd.isna(enriched.loc[5, 'CarrierName'])
    assert pd.isna(enriched.loc[1, 'Holiday'])


def test_count_by_holiday(flights, carriers, holidays):
    enriched = FlightDataEnricher(carriers, holidays).enrich(flights)

    counts = count_by_holiday(enriched)
    by_label = {
        (label if isinstance(label, str) else None): n
        for label, n in zip(counts['Holiday'], counts['num_flights'])
    }

    assert by_label == {'Christmas Day': 1, 'Independence Day': 2, None: 5}
    assert counts['num_flights'].sum() == len(flights)


def test_count_by_holiday_requires_column():
    with pytest.raises(SchemaMismatch):
        count_by_holiday(pd.DataFrame({'x': [np.nan]}))


def test_preview(flights):
    head = preview(flights, ['FlightDate', 'DepDelayMinutes'], n=3)

    assert head.shape == (3, 2)
