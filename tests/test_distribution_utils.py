import unittest
import pandas as pd

from redemption_analytics.data_prep.record_store import ingest_records
from redemption_analytics.data_processing.distribution_utils import (
    age_distribution,
    day_of_week_distribution,
    distribution,
    hour_of_day_distribution,
    offer_performance,
    product_distribution,
    product_retailer_matrix,
    rank_distribution,
    retailer_distribution,
    sort_age_groups,
)
from tests.conftest import make_promo_rows, make_sales_records


class TestDistribution(unittest.TestCase):
    def setUp(self):
        self.records = make_sales_records()

    def test_counts_sorted_with_percentages(self):
        out = retailer_distribution(self.records)
        self.assertEqual(list(out.columns), ['name', 'value', 'percentage'])
        self.assertEqual(out['name'].tolist(), ['Walmart', 'Target'])
        self.assertEqual(out['value'].tolist(), [3, 1])
        self.assertAlmostEqual(out['percentage'].iloc[0], 75.0)

    def test_percentages_sum_to_100(self):
        for field in ('chain', 'product_name', 'gender', 'age_group'):
            pct = distribution(self.records, field)['percentage'].sum()
            self.assertTrue(99.9 <= pct <= 100.1, field)

    def test_missing_values_excluded(self):
        out = distribution(self.records, 'gender')
        self.assertEqual(out['value'].sum(), 3)
        self.assertEqual(dict(zip(out['name'], out['value'])), {'Female': 2, 'Male': 1})

    def test_ties_keep_first_seen_order(self):
        df = ingest_records([{'chain': c, 'receipt_date': '2024-01-01'} for c in ['B', 'A', 'C', 'A', 'B']])
        self.assertEqual(distribution(df, 'chain')['name'].tolist(), ['B', 'A', 'C'])

    def test_empty_and_missing_field(self):
        self.assertTrue(distribution(self.records, 'no_such_field').empty)
        self.assertTrue(distribution(None, 'chain').empty)

    def test_age_groups_use_canonical_order(self):
        self.assertEqual(sort_age_groups(['Under 18', 'Mystery', '65+', '25-34', 'Alpha']),
                         ['25-34', '65+', 'Under 18', 'Alpha', 'Mystery'])
        self.assertEqual(age_distribution(self.records)['name'].tolist(), ['25-34', '35-44', '65+'])

    def test_product_distribution_adds_brand_columns(self):
        out = product_distribution(self.records)
        row = out.set_index('name').loc['Acme Choco Bar']
        self.assertEqual(row['value'], 2)
        self.assertEqual(row['display_name'], 'Bar')
        self.assertEqual(row['brand_name'], 'Acme Choco')
        self.assertAlmostEqual(row['total_value'], 9.0)


class TestTimeOfDayDistributions(unittest.TestCase):
    def test_day_of_week_has_seven_rows(self):
        out = day_of_week_distribution(make_sales_records())
        self.assertEqual(len(out), 7)
        self.assertEqual(out['name'].iloc[0], 'Sunday')
        self.assertEqual(out['value'].tolist(), [1, 2, 0, 0, 0, 0, 0])

    def test_hour_of_day_has_24_rows(self):
        out = hour_of_day_distribution(make_sales_records())
        self.assertEqual(len(out), 24)
        self.assertEqual(out.loc[10, 'name'], '10:00')
        self.assertEqual(out.loc[10, 'value'], 1)
        self.assertEqual(out['value'].sum(), 3)

    def test_empty_records_give_zero_rows(self):
        out = day_of_week_distribution(ingest_records([]))
        self.assertEqual(out['value'].sum(), 0)
        self.assertEqual(len(out), 7)


class TestPromotionalDistributions(unittest.TestCase):
    def setUp(self):
        self.records = ingest_records(make_promo_rows())

    def test_rank_distribution_numeric_order(self):
        self.assertEqual(rank_distribution(self.records)['name'].tolist(), ['1', '2', '10'])

    def test_offer_performance(self):
        out = offer_performance(self.records).set_index('name')
        self.assertEqual(out.loc['Spring Deal', 'value'], 2)
        self.assertEqual(out.loc['Spring Deal', 'active_days'], 2)
        self.assertAlmostEqual(out.loc['Spring Deal', 'avg_hits_per_day'], 1.0)


class TestProductRetailerMatrix(unittest.TestCase):
    def test_counts_and_normalization(self):
        records = make_sales_records()
        counts = product_retailer_matrix(records)
        self.assertEqual(counts.loc['Acme Choco Bar', 'Walmart'], 2)
        self.assertEqual(counts.loc['Acme Choco Bites', 'Walmart'], 0)
        by_product = product_retailer_matrix(records, normalize='product')
        self.assertAlmostEqual(by_product.loc['Acme Choco Bites', 'Target'], 100.0)
        by_retailer = product_retailer_matrix(records, normalize='retailer')
        self.assertAlmostEqual(by_retailer['Walmart'].sum(), 100.0)

    def test_bad_normalize_raises(self):
        with self.assertRaises(ValueError):
            product_retailer_matrix(make_sales_records(), normalize='total')

    def test_empty_records(self):
        self.assertTrue(product_retailer_matrix(pd.DataFrame()).empty)


if __name__ == '__main__':
    unittest.main()
