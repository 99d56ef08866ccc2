"""
Тесты нормализации исходных данных (steel_optimizer.inventory)
===============================================================
Covers:
  - объединение одинаковых проектных позиций
  - отказ при неположительных и нечисловых значениях
  - неограниченное и ограниченное наличие модульного проката
"""

import unittest

from steel_optimizer.config import DEFAULT_CROSS_SECTION
from steel_optimizer.errors import InvalidInputError
from steel_optimizer.inventory import normalize, normalize_demand, normalize_stock
from steel_optimizer.models import StockOrigin


class TestNormalizeDemand(unittest.TestCase):

    def test_duplicates_merged_by_length(self):
        items = normalize_demand([
            {'id': 'A', 'length': 3000, 'quantity': 2},
            {'id': 'B', 'length': 3000, 'quantity': 3},
            {'id': 'C', 'length': 5000, 'quantity': 1},
        ])
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0].id, 'C')
        merged = items[1]
        self.assertEqual(merged.id, 'A')
        self.assertEqual(merged.quantity, 5)
        self.assertEqual(merged.source_ids, ('A', 'B'))

    def test_different_cross_sections_not_merged(self):
        items = normalize_demand([
            {'id': 'A', 'length': 3000, 'quantity': 1, 'crossSection': 100},
            {'id': 'B', 'length': 3000, 'quantity': 1, 'crossSection': 200},
        ])
        self.assertEqual(sorted(item.id for item in items), ['A', 'B'])

    def test_zero_cross_section_defaulted(self):
        items = normalize_demand([{'id': 'A', 'length': 3000, 'quantity': 1, 'crossSection': 0}])
        self.assertEqual(items[0].cross_section, DEFAULT_CROSS_SECTION)

    def test_sorted_longest_first(self):
        items = normalize_demand([
            {'id': 'S', 'length': 100, 'quantity': 1},
            {'id': 'L', 'length': 900, 'quantity': 1},
            {'id': 'M', 'length': 500, 'quantity': 1},
        ])
        self.assertEqual([item.id for item in items], ['L', 'M', 'S'])

    def test_default_ids_and_identity_fields(self):
        items = normalize_demand([{'length': 1200, 'quantity': 4, 'componentNumber': 'GZ-1', 'partNumber': ''}])
        self.assertEqual(items[0].id, 'GZ-1')
        self.assertEqual(items[0].component_number, 'GZ-1')

        items = normalize_demand([{'length': 1200, 'quantity': 4}])
        self.assertEqual(items[0].id, 'D1')

    def test_duplicate_ids_made_unique(self):
        items = normalize_demand([
            {'id': 'X', 'length': 100, 'quantity': 1},
            {'id': 'X', 'length': 200, 'quantity': 1},
        ])
        self.assertEqual({item.id for item in items}, {'X', 'X@200'})

    def test_rejects_non_positive_length(self):
        for length in (0, -5):
            with self.assertRaises(InvalidInputError):
                normalize_demand([{'id': 'A', 'length': length, 'quantity': 1}])

    def test_rejects_non_positive_quantity(self):
        for quantity in (0, -1):
            with self.assertRaises(InvalidInputError):
                normalize_demand([{'id': 'A', 'length': 1000, 'quantity': quantity}])

    def test_rejects_fractional_quantity(self):
        with self.assertRaises(InvalidInputError):
            normalize_demand([{'id': 'A', 'length': 1000, 'quantity': 1.5}])

    def test_rejects_non_numeric_length(self):
        with self.assertRaises(InvalidInputError) as ctx:
            normalize_demand([{'id': 'A', 'length': 'abc', 'quantity': 1}])
        self.assertEqual(ctx.exception.field, 'length')

    def test_rejects_empty_list(self):
        with self.assertRaises(InvalidInputError):
            normalize_demand([])


class TestNormalizeStock(unittest.TestCase):

    def test_unbounded_by_default(self):
        stock = normalize_stock([{'length': 6000, 'name': '6m'}, {'length': 9000}])
        self.assertEqual([s.length for s in stock], [9000.0, 6000.0])
        self.assertTrue(all(s.available is None for s in stock))
        self.assertTrue(all(s.origin == StockOrigin.ORIGINAL for s in stock))

    def test_same_lengths_merged(self):
        stock = normalize_stock([{'length': 6000}, {'length': 6000}])
        self.assertEqual(len(stock), 1)

    def test_bounded_supply_sums_availability(self):
        stock = normalize_stock([{'length': 6000, 'available': 2}, {'length': 6000, 'available': 3}],
                                bounded_supply=True)
        self.assertEqual(stock[0].available, 5)

    def test_shared_name_gets_unique_ids(self):
        stock = normalize_stock([{'name': 'Q235', 'length': 9000, 'available': 5},
                                 {'name': 'Q235', 'length': 6000, 'available': 1}], bounded_supply=True)
        self.assertEqual([s.id for s in stock], ['Q235', 'Q235@6000'])
        self.assertEqual([s.available for s in stock], [5, 1])
        self.assertEqual({s.name for s in stock}, {'Q235'})

    def test_bounded_supply_requires_availability(self):
        with self.assertRaises(InvalidInputError):
            normalize_stock([{'length': 6000}], bounded_supply=True)

    def test_rejects_non_positive_length(self):
        with self.assertRaises(InvalidInputError):
            normalize_stock([{'length': 0}])

    def test_rejects_empty_list(self):
        with self.assertRaises(InvalidInputError):
            normalize_stock([])


class TestNormalize(unittest.TestCase):

    def test_returns_demand_and_stock(self):
        demand, stock = normalize([{'id': 'A', 'length': 1000, 'quantity': 2}], [{'length': 6000}])
        self.assertEqual(len(demand), 1)
        self.assertEqual(len(stock), 1)
        self.assertEqual(demand[0].total_length, 2000)


if __name__ == '__main__':
    unittest.main(verbosity=2)
