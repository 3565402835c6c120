import unittest

from redemption_analytics.data_processing.brand_detection import (
    BrandInfo,
    brand_mapping_from_dict,
    brand_mapping_from_records,
    brand_mapping_to_dict,
    detect_brands,
    display_name,
    extract_brand_names,
    get_client_name,
    products_by_brand,
)
from tests.conftest import make_sales_records


class TestDetectBrands(unittest.TestCase):
    def test_shared_prefix_becomes_brand(self):
        mapping = detect_brands(['Acme Choco Bar', 'Acme Choco Bites', 'Globex Widget'])
        self.assertEqual(mapping['Acme Choco Bar'], BrandInfo('Acme Choco Bar', 'Acme Choco', 'Bar'))
        self.assertEqual(mapping['Acme Choco Bites'].brand_name, 'Acme Choco')
        self.assertEqual(mapping['Acme Choco Bites'].display_name, 'Bites')
        self.assertEqual(mapping['Globex Widget'].brand_name, '')
        self.assertEqual(mapping['Globex Widget'].display_name, 'Globex Widget')

    def test_prefix_stops_at_first_unshared_word(self):
        mapping = detect_brands(['Acme Bar Dark', 'Acme Cookie Dark'])
        self.assertEqual(mapping['Acme Bar Dark'].brand_name, 'Acme')
        self.assertEqual(mapping['Acme Bar Dark'].display_name, 'Bar Dark')

    def test_single_word_names_have_no_brand(self):
        mapping = detect_brands(['Acme', 'Acme Bar'])
        self.assertEqual(mapping['Acme'].brand_name, '')
        self.assertEqual(mapping['Acme'].display_name, 'Acme')
        self.assertEqual(mapping['Acme Bar'].brand_name, 'Acme')
        self.assertEqual(mapping['Acme Bar'].display_name, 'Bar')

    def test_nested_name_shares_one_brand(self):
        mapping = detect_brands(['Acme Bar', 'Acme Bar Large'])
        self.assertEqual(mapping['Acme Bar'], BrandInfo('Acme Bar', 'Acme Bar', 'Acme Bar'))
        self.assertEqual(mapping['Acme Bar Large'], BrandInfo('Acme Bar Large', 'Acme Bar', 'Large'))
        self.assertEqual(extract_brand_names(mapping), ['Acme Bar'])
        self.assertEqual(get_client_name(None, extract_brand_names(mapping)), 'Acme Bar')

    def test_duplicates_and_blanks_ignored(self):
        mapping = detect_brands(['Solo Item', 'Solo Item', None, '  '])
        self.assertEqual(list(mapping), ['Solo Item'])
        self.assertEqual(mapping['Solo Item'].brand_name, '')

    def test_from_records(self):
        mapping = brand_mapping_from_records(make_sales_records())
        self.assertEqual(extract_brand_names(mapping), ['Acme Choco'])
        self.assertEqual(products_by_brand(mapping), {
            'Acme Choco': ['Acme Choco Bar', 'Acme Choco Bites'],
            'Other': ['Globex Widget'],
        })
        self.assertEqual(display_name('Acme Choco Bites', mapping), 'Bites')
        self.assertEqual(display_name('Unknown', mapping), 'Unknown')
        self.assertIsNone(display_name(None, mapping))

    def test_dict_round_trip(self):
        mapping = detect_brands(['Acme Choco Bar', 'Acme Choco Bites'])
        data = brand_mapping_to_dict(mapping)
        self.assertEqual(data['Acme Choco Bar'],
                         {'original': 'Acme Choco Bar', 'brandName': 'Acme Choco', 'displayName': 'Bar'})
        self.assertEqual(brand_mapping_from_dict(data), mapping)


class TestClientName(unittest.TestCase):
    def test_explicit_name_wins(self):
        self.assertEqual(get_client_name(' Acme Corp ', ['Acme']), 'Acme Corp')

    def test_falls_back_to_brands_then_default(self):
        self.assertEqual(get_client_name(None, ['Acme', 'Globex']), 'Acme, Globex')
        self.assertEqual(get_client_name('', []), 'Client')
        self.assertEqual(get_client_name(None, None, default='Brand X'), 'Brand X')


if __name__ == '__main__':
    unittest.main()
