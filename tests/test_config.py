import pytest

from flightduck import config


@pytest.fixture
def results_dir(monkeypatch, tmp_path):
    results = tmp_path / 'results'
    monkeypatch.setattr(config, 'RESULTS_DIR', results)
    monkeypatch.setattr(config, 'CHARTS_DIR', results / 'charts')
    monkeypatch.setattr(config, 'BENCHMARK_DIR', results / 'benchmarks')
    return results


def test_validate_config_creates_output_dirs(results_dir):
    assert config.validate_config()
    assert (results_dir / 'charts').is_dir()
    assert (results_dir / 'benchmarks').is_dir()


def test_validate_config_rejects_zero_test_runs(results_dir, monkeypatch):
    monkeypatch.setitem(config.BENCHMARK_CONFIG, 'test_runs', 0)

    with pytest.raises(ValueError):
        config.validate_config()


def test_sheet_schemas_cover_flight_columns():
    assert config.SHEET_SCHEMAS['sample'] == config.FLIGHT_COLUMNS
    assert config.DAY_LABELS[0] == 'Sun'
