from __future__ import annotations

import importlib.util
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for typed runtime tests")
class TypedRuntimeTests(unittest.TestCase):
    def test_concrete_tags_win_over_wildcard(self) -> None:
        from ewise_jax.typed import typed
        from ewise_jax.values import DenseMatrix

        fn = typed(
            "probe",
            {
                "any, any": lambda x, y: "any",
                "number, any": lambda x, y: "number-any",
                "DenseMatrix, DenseMatrix": lambda x, y: "dense",
                "DenseMatrix, any": lambda x, y: "dense-any",
            },
        )
        dense = DenseMatrix([[1.0]])
        self.assertEqual("dense", fn(dense, dense))
        self.assertEqual("dense-any", fn(dense, 1))
        self.assertEqual("number-any", fn(1, dense))
        self.assertEqual("any", fn("a", "b"))

    def test_earlier_parameters_decide_ties(self) -> None:
        from ewise_jax.typed import typed
        from ewise_jax.values import DenseMatrix, SparseMatrix

        fn = typed(
            "probe",
            {
                "DenseMatrix, any": lambda x, y: "left",
                "any, SparseMatrix": lambda x, y: "right",
            },
        )
        self.assertEqual("left", fn(DenseMatrix([[1.0]]), SparseMatrix((1, 1))))

    def test_union_parameters_match_each_alternative(self) -> None:
        from ewise_jax.typed import typed

        fn = typed("probe", {"number | boolean, number|boolean": lambda x, y: (x, y)})
        self.assertEqual((True, 2), fn(True, 2))
        self.assertEqual((1.5, False), fn(1.5, False))
        self.assertIn("number | boolean, number | boolean", fn.signatures)

    def test_booleans_are_not_numbers(self) -> None:
        from ewise_jax.errors import DispatchError
        from ewise_jax.typed import type_tag, typed

        fn = typed("probe", {"number, number": lambda x, y: x + y})
        self.assertEqual("boolean", type_tag(True))
        self.assertEqual("number", type_tag(2.5))
        self.assertEqual("Array", type_tag([1, 2]))
        with self.assertRaises(DispatchError):
            fn(True, 1)

    def test_no_match_raises_dispatch_error(self) -> None:
        from ewise_jax.errors import DispatchError, EwiseError
        from ewise_jax.typed import typed

        fn = typed("only_numbers", {"number, number": lambda x, y: x + y})
        with self.assertRaises(DispatchError) as ctx:
            fn("a", 1)
        self.assertIn("Unexpected argument types", str(ctx.exception))
        self.assertIn("only_numbers", str(ctx.exception))
        self.assertIsInstance(ctx.exception, TypeError)
        self.assertIsInstance(ctx.exception, EwiseError)

        with self.assertRaises(DispatchError):
            fn(1)

    def test_signature_keys_are_validated(self) -> None:
        from ewise_jax.errors import SignatureError
        from ewise_jax.typed import canonical_key, parse_signature, typed

        self.assertEqual((("number",), ("DenseMatrix", "any")), parse_signature("number ,DenseMatrix|any"))
        self.assertEqual("number, DenseMatrix | any", canonical_key("number ,DenseMatrix|any"))
        with self.assertRaises(SignatureError):
            parse_signature("number, Tensor")
        with self.assertRaises(SignatureError):
            parse_signature("number, ")
        with self.assertRaises(SignatureError):
            typed("bad", {"number | , number": lambda x, y: x})

    def test_conflicting_handlers_are_rejected(self) -> None:
        from ewise_jax.errors import SignatureConflictError
        from ewise_jax.typed import typed

        def rule(x, y):
            return x + y

        with self.assertRaises(SignatureConflictError):
            typed("clash", {"number, number": rule}, {"number,number": lambda x, y: x - y})

        same = typed("same", {"number, number": rule}, {"number,number": rule})
        self.assertEqual(3, same(1, 2))

    def test_signatures_are_read_only(self) -> None:
        from ewise_jax.typed import typed

        fn = typed("probe", {"number, number": lambda x, y: x + y})
        with self.assertRaises(TypeError):
            fn.signatures["any, any"] = lambda x, y: None  # type: ignore[index]

    def test_extend_keeps_name_and_kernel(self) -> None:
        from ewise_jax.typed import typed

        def kernel(w, x):
            return w + x

        fn = typed("plus", {"number, number": lambda x, y: x + y}, kernel=kernel)
        extended = fn.extend({"boolean, boolean": lambda x, y: x or y})
        self.assertEqual("plus", extended.name)
        self.assertIs(kernel, extended.kernel)
        self.assertEqual(True, extended(False, True))
        self.assertEqual(5, extended(2, 3))
        self.assertNotIn("boolean, boolean", fn.signatures)

    def test_resolve_reports_the_chosen_signature(self) -> None:
        from ewise_jax.typed import typed

        def rule(x, y):
            return x

        fn = typed("probe", {"number, any": rule})
        self.assertEqual(("number, any", rule), fn.resolve(1, "x"))

    def test_dispatch_cache_counts_hits(self) -> None:
        from ewise_jax.typed import dispatch_cache_stats, typed

        dispatch_cache_stats(reset=True)
        fn = typed("probe", {"number, number": lambda x, y: x + y})
        fn(1, 2)
        fn(3, 4)
        fn(5.0, 6.0)
        stats = dispatch_cache_stats()
        self.assertEqual(2, stats["misses"])
        self.assertEqual(1, stats["hits"])
        self.assertGreaterEqual(stats["size"], 2)
        self.assertAlmostEqual(1 / 3, stats["hit_rate"])

        dispatch_cache_stats(reset=True)
        self.assertEqual(0, dispatch_cache_stats()["hits"])


if __name__ == "__main__":
    unittest.main()
