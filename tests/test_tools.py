import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from enums import UnitSystem
from tools import DistanceConverter, WeightConverter


class WeightConverterTestCase(unittest.TestCase):
    def test_constants(self) -> None:
        self.assertAlmostEqual(WeightConverter.KG_TO_LB, 2.20462)
        self.assertAlmostEqual(DistanceConverter.KM_TO_MI, 0.621371)

    def test_kg_lb(self) -> None:
        self.assertEqual(WeightConverter.kg_to_lb(100), 220.46)
        self.assertEqual(WeightConverter.lb_to_kg(220.46), 100.0)

    def test_display_and_storage(self) -> None:
        self.assertEqual(WeightConverter.to_display(80.0, UnitSystem.METRIC), 80.0)
        self.assertEqual(WeightConverter.to_display(80.0, "Imperial"), 176.37)
        self.assertEqual(WeightConverter.to_stored(176.37, UnitSystem.IMPERIAL), 80.0)
        self.assertEqual(WeightConverter.to_stored(80.0, "metric"), 80.0)

    def test_distance(self) -> None:
        self.assertEqual(DistanceConverter.km_to_mi(10), 6.21)
        self.assertEqual(DistanceConverter.mi_to_km(6.21), 9.99)
        self.assertEqual(DistanceConverter.to_display(5.0, "Imperial"), 3.11)
        self.assertEqual(DistanceConverter.to_stored(5.0, "Metric"), 5.0)

    def test_unknown_unit_system(self) -> None:
        with self.assertRaises(ValueError):
            WeightConverter.to_display(80.0, "Stone")


if __name__ == "__main__":
    unittest.main()
