import unittest
import math

from redemption_analytics.data_prep.record_store import ingest_records
from redemption_analytics.data_processing.time_series_utils import (
    apply_date_exclusions,
    available_months,
    calculate_trend_line,
    date_range,
    days_between,
    format_month,
    previous_period,
    previous_year_period,
    time_series,
    week_label,
)
from tests.conftest import make_daily_records, make_sales_records


class TestTimeSeries(unittest.TestCase):
    def setUp(self):
        self.records = make_sales_records()

    def test_daily_buckets_skip_undated_records(self):
        out = time_series(self.records, 'daily')
        self.assertEqual(out['bucket_key'].tolist(), ['2024-01-07', '2024-01-08'])
        self.assertEqual(out['count'].tolist(), [1, 2])
        self.assertAlmostEqual(out['value'].iloc[1], 5.25)
        self.assertAlmostEqual(out['avg_value'].iloc[1], 2.625)

    def test_weekly_buckets_start_on_sunday(self):
        out = time_series(self.records, 'weekly')
        self.assertEqual(out['bucket_key'].tolist(), ['2024-01-07'])
        self.assertEqual(out['label'].tolist(), ['Jan 7 - Jan 13'])
        self.assertEqual(out['count'].tolist(), [3])

    def test_monthly(self):
        out = time_series(self.records, 'monthly')
        self.assertEqual(out['bucket_key'].tolist(), ['2024-01'])
        self.assertAlmostEqual(out['value'].iloc[0], 9.75)

    def test_hourly_always_has_24_buckets(self):
        out = time_series(self.records, 'hourly')
        self.assertEqual(len(out), 24)
        self.assertEqual(out['bucket_key'].tolist(), list(range(24)))
        self.assertEqual(out.loc[0, 'count'], 2)
        self.assertEqual(out.loc[10, 'label'], '10:00')
        self.assertEqual(out.loc[5, 'avg_value'], 0.0)
        self.assertEqual(len(time_series(ingest_records([]), 'hourly')), 24)

    def test_unknown_granularity_raises(self):
        with self.assertRaises(ValueError):
            time_series(self.records, 'yearly')

    def test_empty_daily_series(self):
        self.assertTrue(time_series(ingest_records([]), 'daily').empty)

    def test_window_appends_trend(self):
        out = time_series(make_daily_records(10), 'daily', window=7)
        self.assertIn('trend', out.columns)
        self.assertEqual(len(out), 10)


class TestTrendLine(unittest.TestCase):
    def test_length_and_leading_nulls(self):
        series = time_series(make_daily_records(5, per_day=[1, 2, 3, 4, 5]), 'daily')
        out = calculate_trend_line(series, window=3)
        self.assertEqual(len(out), len(series))
        self.assertEqual(out['bucket_key'].tolist(), series['bucket_key'].tolist())
        self.assertTrue(math.isnan(out['trend'].iloc[0]))
        self.assertTrue(math.isnan(out['trend'].iloc[1]))
        self.assertEqual(out['trend'].iloc[2:].tolist(), [2.0, 3.0, 4.0])

    def test_short_series_has_all_null_trend(self):
        series = time_series(make_daily_records(3), 'daily')
        out = calculate_trend_line(series, window=7)
        self.assertEqual(len(out), 3)
        self.assertTrue(out['trend'].isna().all())

    def test_bad_window_raises(self):
        with self.assertRaises(ValueError):
            calculate_trend_line(time_series(make_sales_records()), window=0)


class TestDateHelpers(unittest.TestCase):
    def test_week_label_across_months(self):
        self.assertEqual(week_label('2024-01-28'), 'Jan 28 - Feb 3')

    def test_apply_date_exclusions(self):
        series = time_series(make_daily_records(3), 'daily')
        out = apply_date_exclusions(series, ['01/02/2024'])
        self.assertEqual(out['bucket_key'].tolist(), ['2024-01-01', '2024-01-03'])

    def test_months_and_range(self):
        records = make_sales_records()
        self.assertEqual(format_month('2024-01'), 'January 2024')
        self.assertEqual(format_month('bogus'), 'bogus')
        self.assertEqual(available_months(records), [{'value': '2024-01', 'label': 'January 2024'}])
        self.assertEqual(date_range(records), ('2024-01-07', '2024-01-08'))

    def test_periods(self):
        self.assertEqual(days_between('2024-01-01', '2024-01-31'), 31)
        self.assertEqual(days_between(None, '2024-01-31'), 0)
        self.assertEqual(previous_period('2024-01-08', '2024-01-14'), ('2024-01-01', '2024-01-07'))
        self.assertEqual(previous_year_period('2024-02-29', '2024-03-10'), ('2023-02-28', '2023-03-10'))
        self.assertEqual(previous_period('x', '2024-01-14'), (None, None))


if __name__ == '__main__':
    unittest.main()
