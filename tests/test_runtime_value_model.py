from __future__ import annotations

import math
import unittest

from mbasic.callables import NativeFunction
from mbasic.values import Binary, Hex, ValueKind, is_truthy, kind_of, stringify, validate_value, values_equal


class RuntimeValueModelTests(unittest.TestCase):
    def test_kind_of_classifies_every_runtime_value(self) -> None:
        native = NativeFunction("noop", 0, lambda interpreter, arguments: None)
        cases = [
            (None, ValueKind.NULL),
            (True, ValueKind.BOOL),
            (0, ValueKind.INT),
            (1.5, ValueKind.FLOAT),
            ("s", ValueKind.STRING),
            (Hex("1"), ValueKind.HEX),
            (Binary("1"), ValueKind.BINARY),
            (native, ValueKind.CALLABLE),
        ]
        for value, kind in cases:
            with self.subTest(value=value):
                self.assertIs(kind_of(value), kind)

    def test_validate_value_rejects_host_objects(self) -> None:
        for value in ([1], {"a": 1}, object(), b"bytes"):
            with self.subTest(value=value):
                with self.assertRaisesRegex(TypeError, "unsupported runtime type"):
                    validate_value(value, where="probe")

    def test_truthiness(self) -> None:
        for value in (None, False):
            self.assertFalse(is_truthy(value))
        for value in (True, 0, 0.0, "", Hex("0"), Binary("0")):
            with self.subTest(value=value):
                self.assertTrue(is_truthy(value))

    def test_values_equal(self) -> None:
        self.assertTrue(values_equal(None, None))
        self.assertFalse(values_equal(None, 0))
        self.assertFalse(values_equal(False, 0))
        self.assertFalse(values_equal(1, 1.0))
        self.assertTrue(values_equal(Hex("00F"), Hex("F")))
        self.assertFalse(values_equal(Hex("1"), Binary("1")))

    def test_stringify(self) -> None:
        cases = [
            (None, "nil"),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (3.0, "3"),
            (-0.5, "-0.5"),
            (1e21, "1.0E21"),
            (1e7, "1.0E7"),
            (12345678.0, "1.2345678E7"),
            (-2.5e16, "-2.5E16"),
            (0.001, "0.001"),
            (0.0005, "5.0E-4"),
            (1.5e-05, "1.5E-5"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
            ("text", "text"),
            (Hex("ab"), "0xAB"),
            (Binary("0110"), "0b0110"),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertEqual(stringify(value), expected)

    def test_numerals_are_hashable_by_magnitude(self) -> None:
        self.assertEqual(len({Hex("F"), Hex("0F"), Binary("1111")}), 2)


if __name__ == "__main__":
    unittest.main()
