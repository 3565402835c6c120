import unittest
import pandas as pd

from redemption_analytics.data_prep.field_desc_utils import (
    PROMOTIONAL,
    TRANSACTIONAL,
    detect_dataset_kind,
    map_field_names,
    prepare_field_names,
    preprocess_field_name,
    survey_question_numbers,
)
from redemption_analytics.data_prep.field_value_utils import (
    MalformedDateError,
    clean_numeric,
    clean_text,
    fmt_pct,
    fmt_units,
    is_missing,
    standardize_age_group,
    standardize_date,
    standardize_gender,
    to_iso_date,
)


class TestFieldNames(unittest.TestCase):
    def test_preprocess_field_name(self):
        self.assertEqual(preprocess_field_name('Receipt Date'), 'receipt_date')
        self.assertEqual(preprocess_field_name('  Offer-Name '), 'offer_name')
        self.assertEqual(preprocess_field_name('Question 1'), 'question_01')
        self.assertEqual(preprocess_field_name('proposition_12'), 'proposition_12')

    def test_detect_dataset_kind(self):
        self.assertEqual(detect_dataset_kind(['Offer', 'Hit ID', 'Timestamp']), PROMOTIONAL)
        self.assertEqual(detect_dataset_kind(['Receipt Date', 'Offer']), TRANSACTIONAL)
        self.assertEqual(detect_dataset_kind(['foo']), TRANSACTIONAL)

    def test_map_field_names_aliases_per_kind(self):
        tx = map_field_names(['Date', 'Retailer', 'Amount', 'Sex'], TRANSACTIONAL)
        self.assertEqual(tx, {'Date': 'receipt_date', 'Retailer': 'chain',
                              'Amount': 'receipt_total', 'Sex': 'gender'})
        promo = map_field_names(['Date', 'Campaign'], PROMOTIONAL)
        self.assertEqual(promo, {'Date': 'created_at', 'Campaign': 'offer_name'})

    def test_canonical_column_wins_over_alias(self):
        mapping = map_field_names(['receipt_date', 'date'], TRANSACTIONAL)
        self.assertEqual(mapping['receipt_date'], 'receipt_date')
        self.assertEqual(mapping['date'], 'date')

    def test_unknown_kind_raises(self):
        with self.assertRaises(ValueError):
            map_field_names(['a'], 'bogus')

    def test_prepare_field_names_merges_collapsed_columns(self):
        df = pd.DataFrame({'Store': ['A', None], 'store': [None, 'B']})
        out, kind = prepare_field_names(df)
        self.assertEqual(kind, TRANSACTIONAL)
        self.assertEqual(list(out.columns), ['chain'])
        self.assertEqual(out['chain'].tolist(), ['A', 'B'])

    def test_survey_question_numbers(self):
        cols = ['proposition_02', 'proposition_01', 'question_01', 'chain']
        self.assertEqual(survey_question_numbers(cols), ['01', '02'])


class TestFieldValues(unittest.TestCase):
    def test_is_missing(self):
        for v in (None, float('nan'), pd.NaT, '', '   '):
            self.assertTrue(is_missing(v))
        for v in (0, 'x', 0.0):
            self.assertFalse(is_missing(v))

    def test_standardize_date_formats(self):
        expected = pd.Timestamp('2024-03-07')
        for raw in ('2024-03-07', '03/07/2024', '03-07-2024', '2024/03/07'):
            self.assertEqual(standardize_date(raw), expected, raw)

    def test_standardize_date_converts_timezone_to_utc(self):
        ts = standardize_date('2024-03-07T23:30:00-02:00')
        self.assertEqual(ts, pd.Timestamp('2024-03-08 01:30:00'))
        self.assertIsNone(ts.tzinfo)

    def test_standardize_date_malformed(self):
        self.assertIsNone(standardize_date('garbage'))
        self.assertIsNone(standardize_date(None, strict=True))
        with self.assertRaises(MalformedDateError):
            standardize_date('13/45/2024', strict=True)

    def test_to_iso_date(self):
        self.assertEqual(to_iso_date('1/2/2024'), '2024-01-02')
        self.assertIsNone(to_iso_date('nope'))

    def test_clean_numeric(self):
        self.assertEqual(clean_numeric('$1,234.50'), 1234.5)
        self.assertEqual(clean_numeric('€ 3'), 3.0)
        self.assertEqual(clean_numeric(7), 7.0)
        self.assertIsNone(clean_numeric('n/a'))
        self.assertIsNone(clean_numeric(None))

    def test_clean_text(self):
        self.assertEqual(clean_text('  "Acme   Bar" '), 'Acme Bar')
        self.assertIsNone(clean_text('   '))

    def test_standardize_age_group(self):
        self.assertEqual(standardize_age_group('34'), '25-34')
        self.assertEqual(standardize_age_group('over 65'), '65+')
        self.assertEqual(standardize_age_group('17'), 'Under 18')
        self.assertEqual(standardize_age_group('25-34 yrs'), '25-34')
        self.assertEqual(standardize_age_group('unknown'), 'unknown')

    def test_standardize_gender(self):
        self.assertEqual(standardize_gender('m'), 'Male')
        self.assertEqual(standardize_gender('Female'), 'Female')
        self.assertEqual(standardize_gender('Non-binary'), 'Other')
        # no substring matching: 'woman' must not become Male
        self.assertEqual(standardize_gender('woman'), 'Female')

    def test_formatters(self):
        self.assertEqual(fmt_units(1234), '1,234 units')
        self.assertEqual(fmt_pct(12.345), '12.3%')
        self.assertEqual(fmt_pct('x'), 'Invalid value')


if __name__ == '__main__':
    unittest.main()
