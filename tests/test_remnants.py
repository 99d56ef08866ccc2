"""
Тесты реестра остатков (steel_optimizer.remnants)
"""

import unittest

from steel_optimizer.errors import InternalError
from steel_optimizer.models import RemnantKind, StockOrigin
from steel_optimizer.remnants import RemnantLedger


class TestClassification(unittest.TestCase):

    def setUp(self):
        self.ledger = RemnantLedger(waste_threshold=100)

    def test_short_leftover_is_waste(self):
        remnant = self.ledger.record(50, step=0)
        self.assertEqual(remnant.kind, RemnantKind.WASTE)
        self.assertEqual(self.ledger.count, 0)

    def test_threshold_length_is_reusable(self):
        remnant = self.ledger.record(100, step=0)
        self.assertEqual(remnant.kind, RemnantKind.REUSABLE)
        self.assertEqual(self.ledger.count, 1)

    def test_zero_leftover_is_waste(self):
        remnant = self.ledger.record(0, step=0)
        self.assertTrue(remnant.is_waste)
        self.assertEqual(remnant.length, 0)

    def test_negative_leftover_rejected(self):
        with self.assertRaises(InternalError):
            self.ledger.record(-1, step=0)


class TestReclaim(unittest.TestCase):

    def setUp(self):
        self.ledger = RemnantLedger(waste_threshold=100)

    def test_identical_remnants_coalesce(self):
        self.ledger.record(500, step=0)
        self.ledger.record(500, step=1)
        items = self.ledger.reclaim(0)
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].available, 2)
        self.assertEqual(items[0].produced_at, 0)
        self.assertEqual(items[0].origin, StockOrigin.REMNANT)

    def test_min_length_filter(self):
        self.ledger.record(300, step=0)
        self.ledger.record(800, step=1)
        items = self.ledger.reclaim(500)
        self.assertEqual([item.length for item in items], [800])

    def test_long_remnants_get_distinct_ids(self):
        self.ledger.record(1000000.5, step=0)
        self.ledger.record(1000000.25, step=1)
        self.ledger.record(800, step=2)
        ids = [item.id for item in self.ledger.reclaim(0)]
        self.assertEqual(ids, ['R1000000.5', 'R1000000.25', 'R800'])

    def test_totals_and_unused(self):
        self.ledger.record(300, step=0)
        self.ledger.record(800, step=1)
        self.ledger.record(40, step=2)
        self.assertEqual(self.ledger.total_length, 1100)
        self.assertEqual(sorted(r.length for r in self.ledger.unused()), [300, 800])
        self.assertEqual(len(self.ledger.produced), 3)


class TestConsume(unittest.TestCase):

    def setUp(self):
        self.ledger = RemnantLedger(waste_threshold=100)
        self.ledger.record(500, step=3)

    def test_same_step_cannot_consume(self):
        with self.assertRaises(InternalError):
            self.ledger.consume(500, step=3)

    def test_earlier_step_cannot_consume(self):
        with self.assertRaises(InternalError):
            self.ledger.consume(500, step=1)

    def test_later_step_consumes_once(self):
        self.assertEqual(self.ledger.consume(500, step=4), 3)
        self.assertEqual(self.ledger.count, 0)
        with self.assertRaises(InternalError):
            self.ledger.consume(500, step=5)

    def test_fifo_order(self):
        self.ledger.record(500, step=4)
        self.assertEqual(self.ledger.consume(500, step=6), 3)
        self.assertEqual(self.ledger.consume(500, step=6), 4)


if __name__ == '__main__':
    unittest.main(verbosity=2)
