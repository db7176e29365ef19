from __future__ import annotations

import io
import time
import unittest

from mbasic import Interpreter, Session
from mbasic.callables import NATIVE_FUNCTIONS, NativeFunction
from mbasic.errors import MBasicTypeError, RadixError
from mbasic.values import Binary, Hex


class NativeFunctionSurfaceTests(unittest.TestCase):
    NATIVE_ARITIES = {
        "clock": 0,
        "print": 1,
        "str": 1,
        "read": 0,
        "binary": 1,
        "hexadecimal": 1,
        "decimal": 1,
    }

    def _call(self, name: str, *arguments: object, stdin: str = "") -> object:
        interpreter = Interpreter(stdout=io.StringIO(), stdin=io.StringIO(stdin))
        return interpreter.globals.get(name).call(interpreter, list(arguments))

    def test_globals_expose_every_native(self) -> None:
        interpreter = Interpreter()
        self.assertEqual(set(NATIVE_FUNCTIONS), set(self.NATIVE_ARITIES))
        for name, arity in self.NATIVE_ARITIES.items():
            with self.subTest(name=name):
                fn = interpreter.globals.get(name)
                self.assertIsInstance(fn, NativeFunction)
                self.assertEqual(fn.arity, arity)
                self.assertEqual(str(fn), "<native fn>")

    def test_print_writes_line_and_returns_nil(self) -> None:
        out = io.StringIO()
        session = Session(stdout=out)
        session.run('let r = print("hi");')
        self.assertEqual(out.getvalue(), "hi\n")
        self.assertIsNone(session.globals.get("r"))

    def test_print_formats_values(self) -> None:
        out = io.StringIO()
        Session(stdout=out).run("print(3.0); print(2.5); print(true); print(null); print(0xff); print(0b10); print(print);")
        self.assertEqual(out.getvalue(), "3\n2.5\ntrue\nnil\n0xFF\n0b10\n<native fn>\n")

    def test_str_matches_print_formatting(self) -> None:
        self.assertEqual(self._call("str", 2.0), "2")
        self.assertEqual(self._call("str", None), "nil")
        self.assertEqual(self._call("str", False), "false")
        self.assertEqual(self._call("str", Hex("A")), "0xA")

    def test_clock_returns_wall_seconds(self) -> None:
        before = time.time()
        value = self._call("clock")
        self.assertIsInstance(value, float)
        self.assertGreaterEqual(value, before)

    def test_read_returns_lines_then_nil(self) -> None:
        out = io.StringIO()
        session = Session(stdout=out, stdin=io.StringIO("hello\nworld"))
        session.run("let a = read(); let b = read(); let c = read();")
        self.assertEqual(session.globals.get("a"), "hello")
        self.assertEqual(session.globals.get("b"), "world")
        self.assertIsNone(session.globals.get("c"))

    def test_hexadecimal_and_binary_conversions(self) -> None:
        self.assertEqual(self._call("hexadecimal", 255), Hex("FF"))
        self.assertEqual(self._call("hexadecimal", 0), Hex("0"))
        self.assertEqual(self._call("hexadecimal", Binary("1010")), Hex("A"))
        self.assertEqual(self._call("hexadecimal", "0b1111"), Hex("F"))
        self.assertEqual(self._call("binary", 5), Binary("101"))
        self.assertEqual(self._call("binary", Hex("A")), Binary("1010"))
        self.assertEqual(self._call("binary", "0x3"), Binary("11"))
        self.assertEqual(self._call("binary", Binary("0")), Binary("0"))

    def test_conversion_rejects_other_kinds(self) -> None:
        for name in ("binary", "hexadecimal"):
            for argument in (True, 1.5, "text", None):
                with self.subTest(name=name, argument=argument):
                    with self.assertRaises(MBasicTypeError) as ctx:
                        self._call(name, argument)
                    self.assertEqual(str(ctx.exception), "Expected bin, int, or hex.")
        with self.assertRaises(RadixError):
            self._call("hexadecimal", -1)

    def test_decimal(self) -> None:
        self.assertEqual(self._call("decimal", Hex("FF")), 255)
        self.assertEqual(self._call("decimal", Binary("101")), 5)
        self.assertEqual(self._call("decimal", "0x10"), 16)
        self.assertEqual(self._call("decimal", "42"), 42)
        self.assertEqual(self._call("decimal", "3.5"), "3.5")
        self.assertEqual(self._call("decimal", 7), 7)
        self.assertEqual(self._call("decimal", 2.5), 2.5)
        for argument in ("abc", True, None):
            with self.subTest(argument=argument):
                with self.assertRaises(MBasicTypeError):
                    self._call("decimal", argument)

    def test_radix_round_trip_through_natives(self) -> None:
        for n in range(0, 300):
            with self.subTest(n=n):
                self.assertEqual(self._call("decimal", self._call("hexadecimal", n)), n)
                self.assertEqual(self._call("decimal", self._call("binary", n)), n)

    def test_native_errors_report_call_site_line(self) -> None:
        with self.assertRaises(MBasicTypeError) as ctx:
            Session(stdout=io.StringIO()).run('let a = 1;\nlet b = decimal("abc");')
        self.assertEqual(ctx.exception.line, 2)

    def test_natives_can_be_shadowed(self) -> None:
        out = io.StringIO()
        session = Session(stdout=out)
        session.run("do str(x) { return \"custom\"; } let r = str(1);")
        self.assertEqual(session.globals.get("r"), "custom")


if __name__ == "__main__":
    unittest.main()
