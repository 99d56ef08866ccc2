"""
Тесты генератора схем раскроя (steel_optimizer.patterns)
=========================================================
Covers:
  - инвариант: сумма резов + остаток == длина заготовки
  - обязательная позиция, ограничения количества
  - порядок схем и детерминированность
  - ограничение перебора и жадная схема
  - режимы оценки UTILIZATION / SCARCITY
"""

import unittest

from steel_optimizer.models import CuttingPattern, DemandItem
from steel_optimizer.patterns import PatternGenerator, PatternScoring, build_pattern, pattern_rank_key


def _item(item_id, length, quantity=1):
    return DemandItem(id=item_id, length=float(length), quantity=quantity)


def _demand(*specs):
    return [(_item(item_id, length, qty), qty) for item_id, length, qty in specs]


MIXED = _demand(('A', 4200, 5), ('B', 2650, 7), ('C', 1175, 9), ('D', 730, 4), ('E', 480, 12), ('F', 333, 6))


class TestPatternInvariant(unittest.TestCase):

    def test_sum_plus_leftover_equals_stock(self):
        generator = PatternGenerator(waste_threshold=300)
        for stock_length in (6000, 9000, 12000, 4500):
            for required in ('A', 'C', 'F', None):
                for pattern in generator.generate(stock_length, MIXED, required_id=required):
                    self.assertTrue(pattern.is_consistent())
                    self.assertGreaterEqual(pattern.leftover, 0)
                    self.assertAlmostEqual(pattern.used_length + pattern.leftover, stock_length, places=6)
                    if required:
                        self.assertIn(required, pattern.counts())

    def test_counts_capped_by_remaining(self):
        generator = PatternGenerator(waste_threshold=100)
        patterns = generator.generate(6000, _demand(('A', 1000, 2)))
        self.assertEqual(patterns[0].counts(), {'A': 2})
        self.assertEqual(patterns[0].leftover, 4000)

    def test_reusable_flag(self):
        generator = PatternGenerator(waste_threshold=100)
        pattern = generator.generate(6000, _demand(('A', 5000, 1)))[0]
        self.assertTrue(pattern.reusable)
        pattern = generator.generate(6000, _demand(('A', 5900, 1), ('B', 90, 1)))[0]
        self.assertFalse(pattern.reusable)

    def test_build_pattern_clamps_rounding(self):
        pattern = build_pattern(0.3, [('A', 0.1, 3)], waste_threshold=100)
        self.assertEqual(pattern.leftover, 0.0)
        self.assertTrue(pattern.is_consistent())

    def test_inconsistent_pattern_detected(self):
        pattern = CuttingPattern(stock_length=6000, pieces=(('A', 5000.0, 1),), leftover=500)
        self.assertFalse(pattern.is_consistent())
        pattern = CuttingPattern(stock_length=6000, pieces=(('A', 6100.0, 1),), leftover=-100)
        self.assertFalse(pattern.is_consistent())


class TestPatternSelection(unittest.TestCase):

    def test_both_pieces_in_one_bar(self):
        generator = PatternGenerator(waste_threshold=100)
        best = generator.generate(6000, _demand(('A', 5900, 1), ('B', 90, 1)), required_id='A')[0]
        self.assertEqual(best.counts(), {'A': 1, 'B': 1})
        self.assertAlmostEqual(best.leftover, 10)

    def test_required_item_too_long(self):
        generator = PatternGenerator(waste_threshold=100)
        self.assertEqual(generator.generate(6000, _demand(('A', 6100, 1), ('B', 500, 1)), required_id='A'), [])

    def test_required_item_absent(self):
        generator = PatternGenerator(waste_threshold=100)
        self.assertEqual(generator.generate(6000, _demand(('B', 500, 1)), required_id='Z'), [])

    def test_fewer_distinct_lengths_preferred_on_equal_leftover(self):
        single = build_pattern(1000, [('A', 500, 2)], waste_threshold=100)
        mixed = build_pattern(1000, [('A', 500, 1), ('B', 250, 2)], waste_threshold=100)
        ranked = sorted([mixed, single], key=lambda p: pattern_rank_key(p, PatternScoring.UTILIZATION, {}))
        self.assertEqual(ranked[0], single)

    def test_fewer_distinct_lengths_among_exact_fits(self):
        # A+B+C и A+Dx2 заполняют пруток без остатка; A+B+C находится первой
        generator = PatternGenerator(waste_threshold=100)
        demand = _demand(('A', 3000, 1), ('B', 2000, 1), ('D', 1500, 4), ('C', 1000, 1))
        patterns = generator.generate(6000, demand, required_id='A')
        best = patterns[0]
        self.assertEqual(best.leftover, 0)
        self.assertEqual(best.distinct_count, 2)
        self.assertEqual(best.counts(), {'A': 1, 'D': 2})
        exact = [p.counts() for p in patterns if p.leftover == 0]
        self.assertIn({'A': 1, 'B': 1, 'C': 1}, exact)

    def test_single_length_exact_fit(self):
        generator = PatternGenerator(waste_threshold=100)
        patterns = generator.generate(6000, _demand(('A', 3000, 2), ('B', 2000, 3)), required_id='A')
        self.assertEqual(patterns[0].counts(), {'A': 2})

    def test_smaller_leftover_ranked_first(self):
        generator = PatternGenerator(waste_threshold=100)
        patterns = generator.generate(6000, MIXED, required_id='A')
        leftovers = [round(p.leftover, 6) for p in patterns]
        self.assertEqual(leftovers, sorted(leftovers))

    def test_patterns_are_maximal(self):
        generator = PatternGenerator(waste_threshold=100)
        remaining = {item.id: qty for item, qty in MIXED}
        lengths = {item.id: item.length for item, _ in MIXED}
        for pattern in generator.generate(9000, MIXED, required_id='B'):
            counts = pattern.counts()
            for item_id, length in lengths.items():
                if counts.get(item_id, 0) < remaining[item_id]:
                    self.assertLess(pattern.leftover, length)


class TestScoringModes(unittest.TestCase):

    DEMAND = _demand(('A', 500, 10), ('B', 450, 1))

    def test_utilization_minimizes_leftover(self):
        generator = PatternGenerator(waste_threshold=100, scoring=PatternScoring.UTILIZATION)
        best = generator.generate(1000, self.DEMAND)[0]
        self.assertEqual(best.counts(), {'A': 2})

    def test_scarcity_prefers_closing_items(self):
        generator = PatternGenerator(waste_threshold=100, scoring=PatternScoring.SCARCITY, scarcity_bonus=0.5)
        best = generator.generate(1000, self.DEMAND)[0]
        self.assertEqual(best.counts(), {'A': 1, 'B': 1})


class TestEnumerationCap(unittest.TestCase):

    def test_greedy_fallback_when_capped(self):
        generator = PatternGenerator(waste_threshold=100, max_nodes=1)
        patterns = generator.generate(6000, _demand(('A', 2500, 3), ('B', 1000, 5)), required_id='A')
        self.assertEqual(generator.truncated_count, 1)
        self.assertEqual(len(patterns), 1)
        self.assertEqual(patterns[0].counts(), {'A': 2, 'B': 1})
        self.assertEqual(patterns[0].leftover, 0.0)

    def test_deterministic(self):
        first = PatternGenerator(waste_threshold=300, max_nodes=50).generate(12000, MIXED, required_id='A')
        second = PatternGenerator(waste_threshold=300, max_nodes=50).generate(12000, MIXED, required_id='A')
        self.assertEqual(first, second)

    def test_cached_result_reused(self):
        generator = PatternGenerator(waste_threshold=300)
        first = generator.generate(9000, MIXED, required_id='B')
        self.assertIs(generator.generate(9000, MIXED, required_id='B'), first)

    def test_stop_request_not_cached(self):
        generator = PatternGenerator(waste_threshold=300, max_nodes=100000)
        demand = _demand(*[(f"P{i}", 300.7 + 37 * i, 20) for i in range(25)])
        stopped = generator.generate(12000, demand, required_id='P24', should_stop=lambda: True)
        self.assertTrue(stopped)
        full = generator.generate(12000, demand, required_id='P24')
        self.assertIsNot(full, stopped)


if __name__ == '__main__':
    unittest.main(verbosity=2)
