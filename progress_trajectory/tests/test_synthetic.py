"""
Test Module for the Synthetic Snapshot Generator.

Checks reproducibility, the output schema, monotonic work histories, the
truncated projects and that generated data loads cleanly.
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from progress_trajectory.services.ingestion import REQUIRED_COLUMNS, load_snapshots_csv
from progress_trajectory.services.metrics import add_derived_columns
from progress_trajectory.services.synthetic import (
    HISTORY_MONTHS,
    TRUNCATED_HISTORIES,
    generate_sample_data,
    write_sample_csv,
)


class TestGenerateSampleData:
    """
    Tests for generate_sample_data.
    """

    def test_reproducible(self):
        pd.testing.assert_frame_equal(generate_sample_data(seed=42), generate_sample_data(seed=42))

    def test_seed_changes_data(self):
        a = generate_sample_data(seed=1)
        b = generate_sample_data(seed=2)
        assert not a['work_done'].equals(b['work_done'])

    def test_schema(self):
        data = generate_sample_data()

        assert list(data.columns) == REQUIRED_COLUMNS
        assert data['contract_id'].nunique() == 20
        assert data['months_ago'].between(0, HISTORY_MONTHS - 1).all()

    def test_ordering(self):
        data = generate_sample_data()
        for _, project in data.groupby('contract_id'):
            assert project['months_ago'].is_monotonic_decreasing

    def test_truncated_projects(self):
        sizes = generate_sample_data().groupby('contract_id').size()

        short = sorted(sizes[sizes < HISTORY_MONTHS].tolist())
        assert short == TRUNCATED_HISTORIES
        assert (sizes[sizes == HISTORY_MONTHS]).count() == 20 - len(TRUNCATED_HISTORIES)

    def test_current_snapshot_date(self):
        data = generate_sample_data(current_date=date(2025, 7, 26))
        current = data[data['months_ago'] == 0]

        assert len(current) == 20
        assert (current['snapshot_date'] == pd.Timestamp('2025-07-26')).all()
        one_month = data[data['months_ago'] == 1]
        assert (one_month['snapshot_date'] == pd.Timestamp('2025-06-26')).all()

    def test_work_history_monotonic(self):
        data = generate_sample_data()
        for _, project in data.groupby('contract_id'):
            work = project.sort_values('months_ago', ascending=False)['work_done'].to_numpy()
            assert (np.diff(work) >= 0).all()

    def test_work_within_budget(self):
        data = generate_sample_data()

        assert (data['work_done'] >= 0).all()
        assert (data['work_done'] <= data['budget']).all()
        assert (data['budget'] % 1000 == 0).all()

    def test_overdue_projects(self):
        derived = add_derived_columns(generate_sample_data())
        current = derived[derived['months_ago'] == 0]

        assert 1 <= int((current['pct_time'] >= 99.9).sum()) <= 2
        assert (current['pct_time'] <= 111).all()

    def test_too_few_projects(self):
        with pytest.raises(ValueError):
            generate_sample_data(n_projects=5)

    def test_minimum_projects(self):
        data = generate_sample_data(n_projects=7)
        assert data['contract_id'].nunique() == 7


class TestWriteSampleCsv:

    def test_round_trip_through_loader(self, tmp_path):
        path = write_sample_csv(tmp_path / 'sample.csv', seed=9)

        assert path.exists()
        loaded = load_snapshots_csv(path, '/')
        assert len(loaded) == len(generate_sample_data(seed=9))
        assert loaded['contract_id'].str.startswith('PROJ_').all()

    def test_iso_dates_written(self, tmp_path):
        path = write_sample_csv(tmp_path / 'sample.csv')
        header, first = path.read_text().splitlines()[:2]

        assert header.split(',') == REQUIRED_COLUMNS
        snapshot_date = first.split(',')[2]
        assert len(snapshot_date) == 10
        assert snapshot_date[4] == '-'
