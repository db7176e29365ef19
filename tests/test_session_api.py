from __future__ import annotations

import gc
import io
import sys
import unittest

from mbasic import Completion, Interpreter, Session, parse_program, run
from mbasic.ast import Return
from mbasic.errors import MBasicCompileError, UndefinedVariableError
from mbasic.resolver import Resolver


class SessionAndInterpreterApiTests(unittest.TestCase):
    def test_run_returns_the_session(self) -> None:
        out = io.StringIO()
        session = run('let greeting = "hi"; print(greeting);', stdout=out)
        self.assertIsInstance(session, Session)
        self.assertEqual(session.globals.get("greeting"), "hi")
        self.assertEqual(out.getvalue(), "hi\n")

    def test_run_uses_given_stdin(self) -> None:
        out = io.StringIO()
        run("print(read());", stdout=out, stdin=io.StringIO("echo\n"))
        self.assertEqual(out.getvalue(), "echo\n")

    def test_session_keeps_definitions_between_runs(self) -> None:
        out = io.StringIO()
        session = Session(stdout=out)
        session.run("do double(n) { return n + n; }")
        session.run("let total = 1;")
        session.run("total = total + double(3);")
        self.assertEqual(session.globals.get("total"), 7)

    def test_compile_errors_do_not_touch_session_state(self) -> None:
        session = Session(stdout=io.StringIO())
        session.run("let kept = 1;")
        with self.assertRaises(MBasicCompileError):
            session.run("kept = 2;\nlet = 3;")
        self.assertEqual(session.globals.get("kept"), 1)

    def test_compile_returns_statements(self) -> None:
        statements = Session().compile("let a = 1; print(a);")
        self.assertEqual(len(statements), 2)

    def test_interpret_hands_back_runtime_error(self) -> None:
        interpreter = Interpreter(stdout=io.StringIO())
        err = interpreter.interpret(parse_program("let a = 1; a = b;"))
        self.assertIsInstance(err, UndefinedVariableError)
        self.assertEqual(interpreter.globals.get("a"), 1)
        self.assertIsNone(interpreter.interpret(parse_program("a = 3;")))
        self.assertEqual(interpreter.globals.get("a"), 3)

    def test_unresolved_names_fall_back_to_globals(self) -> None:
        interpreter = Interpreter(stdout=io.StringIO())
        statements = parse_program("let x = 1; { x = x + 1; }")
        self.assertIsNone(interpreter.interpret(statements))
        self.assertEqual(interpreter.globals.get("x"), 2)

    def test_block_locals_need_resolution(self) -> None:
        statements = parse_program("{ let y = 1; y = y + 1; print(y); }")

        unresolved = Interpreter(stdout=io.StringIO())
        self.assertIsInstance(unresolved.interpret(statements), UndefinedVariableError)

        out = io.StringIO()
        resolved = Interpreter(stdout=out)
        self.assertEqual(Resolver(resolved).resolve(statements), [])
        self.assertIsNone(resolved.interpret(statements))
        self.assertEqual(out.getvalue(), "2\n")

    def test_resolver_records_scope_distances(self) -> None:
        (fn,) = parse_program("do f(a) { { return a; } }")
        interpreter = Interpreter()
        Resolver(interpreter).resolve([fn])
        (block,) = fn.body
        (ret,) = block.statements
        self.assertEqual(interpreter.distance_of(ret.value), 1)

    def test_equal_looking_nodes_resolve_independently(self) -> None:
        statements = parse_program("let v = 1; do f(v) { return v; } let r = v;")
        interpreter = Interpreter()
        Resolver(interpreter).resolve(statements)
        inner = statements[1].body[0].value
        outer = statements[2].initializer
        self.assertEqual(interpreter.distance_of(inner), 0)
        self.assertIsNone(interpreter.distance_of(outer))

    def test_run_restores_the_host_recursion_limit(self) -> None:
        before = sys.getrecursionlimit()
        run("do down(n) { if (n < 1) return 0; return down(n - 1); } down(500);", stdout=io.StringIO())
        self.assertEqual(sys.getrecursionlimit(), before)

    def test_runaway_recursion_is_not_a_language_error(self) -> None:
        session = Session(stdout=io.StringIO())
        with self.assertRaises(RecursionError):
            session.run("do forever(n) { return forever(n + 1); } forever(0);")

    def test_resolution_entries_leave_with_their_program(self) -> None:
        interpreter = Interpreter(stdout=io.StringIO())
        statements = parse_program("do f(a) { return a; } do g(b) { b = b + 1; return b; }")
        Resolver(interpreter).resolve(statements)
        self.assertEqual(interpreter.resolution_count, 4)
        del statements
        gc.collect()
        self.assertEqual(interpreter.resolution_count, 0)

    def test_resolution_survives_while_a_closure_holds_the_program(self) -> None:
        session = Session(stdout=io.StringIO())
        session.run("do make() { let hidden = 41; do get() { hidden = hidden + 1; return hidden; } return get; } let getter = make();")
        gc.collect()
        session.run("let answer = getter();")
        self.assertEqual(session.globals.get("answer"), 42)

    def test_execute_reports_return_completion(self) -> None:
        interpreter = Interpreter()
        (fn,) = parse_program("do f() { return 4; }")
        stmt = fn.body[0]
        self.assertIsInstance(stmt, Return)
        completion = interpreter.execute(stmt, interpreter.globals)
        self.assertEqual(completion, Completion(returned=True, value=4))
        self.assertFalse(interpreter.execute(parse_program("1;")[0], interpreter.globals).returned)


if __name__ == "__main__":
    unittest.main()
