import json

import pandas as pd
from loguru import logger

import main
from plotting import plot_projection_comparison, plot_value_bands
from simulation import AnnuityScenarioSimulator


def _restore_logger():
    logger.remove()
    logger.add(lambda m: None, level="DEBUG")


def test_main_fixed_scenario(tmp_path, monkeypatch, default_config_path, sample_book_path):
    monkeypatch.chdir(tmp_path)
    try:
        assert main.main([default_config_path, sample_book_path]) == 0
    finally:
        _restore_logger()

    assert len(list(tmp_path.glob("*_COMPARE.png"))) == 1
    csv_files = list(tmp_path.glob("*_TRAJECTORY.csv"))
    assert len(csv_files) == 1
    table = pd.read_csv(csv_files[0])
    assert len(table) == 31
    assert {"value_client", "value_comparison", "income_to_date_client"} <= set(table.columns)
    assert not list(tmp_path.glob("*_BANDS.png"))
    assert len(list(tmp_path.glob("annuity_proj_log_*.log"))) == 1


def test_main_random_scenario_writes_bands(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "random.json"
    config_path.write_text(json.dumps({
        "scenario": "Random Run",
        "start_value": 100000,
        "years": 10,
        "income_start": 2,
        "payout_rate": 0.05,
        "rollup_rate": 0.05,
        "mode": "Monte Carlo",
        "seed": 5,
        "num_paths": 20,
    }))
    try:
        assert main.main([str(config_path)]) == 0
    finally:
        _restore_logger()

    assert len(list(tmp_path.glob("annuity_proj_Random_Run_*_BANDS.png"))) == 1


def test_main_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    try:
        assert main.main([str(tmp_path / "missing.json")]) == 1
    finally:
        _restore_logger()


def test_main_missing_book(tmp_path, monkeypatch, default_config_path):
    monkeypatch.chdir(tmp_path)
    try:
        assert main.main([default_config_path, str(tmp_path / "missing.csv")]) == 1
    finally:
        _restore_logger()


def test_plots_written(tmp_path, random_config):
    simulator = AnnuityScenarioSimulator(random_config)
    result = simulator.run_comparison()
    percentiles_df, sample_paths = simulator.run_monte_carlo(10)

    compare_file = tmp_path / "charts" / "compare.png"
    bands_file = tmp_path / "charts" / "bands.png"
    plot_projection_comparison(result, random_config, str(compare_file))
    plot_value_bands(percentiles_df, sample_paths, random_config, str(bands_file))

    assert compare_file.exists()
    assert bands_file.exists()
