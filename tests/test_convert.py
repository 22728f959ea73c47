import math
import unittest

from pydantic import BaseModel

from fluent_llm.convert import (
    INT_MAX,
    INT_MIN,
    dumps_dynamic,
    from_dynamic,
    is_array_mapping,
    loads_dynamic,
    to_dynamic,
)
from fluent_llm.errors import LLMValidationError


class Point(BaseModel):
    x: int
    y: int


class ConvertTests(unittest.TestCase):
    def test_json_shaped_values_round_trip(self) -> None:
        samples = [
            None,
            True,
            False,
            0,
            -17,
            INT_MAX,
            INT_MIN,
            3.5,
            "",
            "héllo",
            [],
            {},
            [1, "two", None, [3.0, {"four": 4}]],
            {"a": {"b": [True, {"c": None}]}, "d": "e"},
        ]
        for value in samples:
            with self.subTest(value=value):
                self.assertEqual(from_dynamic(to_dynamic(value)), value)

    def test_sequential_int_keys_become_array(self) -> None:
        self.assertEqual(to_dynamic({0: "a", 1: "b", 2: "c"}), ["a", "b", "c"])

    def test_non_sequential_int_keys_become_object(self) -> None:
        self.assertEqual(to_dynamic({1: "a", 5: "b"}), {"1": "a", "5": "b"})
        self.assertEqual(to_dynamic({1: "a", 0: "b"}), {"1": "a", "0": "b"})

    def test_mixed_keys_become_object(self) -> None:
        self.assertEqual(to_dynamic({0: "a", "name": "b"}), {"0": "a", "name": "b"})

    def test_string_digit_keys_stay_object(self) -> None:
        self.assertEqual(to_dynamic({"0": "a", "1": "b"}), {"0": "a", "1": "b"})

    def test_rule_is_shared_by_both_directions(self) -> None:
        value = {0: {0: 1, 1: 2}, 1: {"k": "v"}}
        self.assertEqual(to_dynamic(value), from_dynamic(value))
        self.assertEqual(from_dynamic(value), [[1, 2], {"k": "v"}])

    def test_is_array_mapping(self) -> None:
        self.assertTrue(is_array_mapping({0: "x"}))
        self.assertFalse(is_array_mapping({}))
        self.assertFalse(is_array_mapping({True: "x"}))
        self.assertFalse(is_array_mapping({1: "x"}))

    def test_tuples_are_arrays(self) -> None:
        self.assertEqual(to_dynamic((1, (2, 3))), [1, [2, 3]])

    def test_unrepresentable_leaves_become_null(self) -> None:
        self.assertIsNone(to_dynamic(object()))
        self.assertEqual(to_dynamic({"s": {1, 2}, "b": b"raw"}), {"s": None, "b": None})
        self.assertIsNone(to_dynamic(math.nan))
        self.assertIsNone(to_dynamic(math.inf))

    def test_out_of_range_integers_fail(self) -> None:
        with self.assertRaises(LLMValidationError):
            to_dynamic(INT_MAX + 1)
        with self.assertRaises(LLMValidationError):
            from_dynamic([INT_MIN - 1])

    def test_cyclic_containers_fail(self) -> None:
        value: list = [1]
        value.append(value)
        with self.assertRaises(LLMValidationError):
            to_dynamic(value)

    def test_shared_non_cyclic_children_are_allowed(self) -> None:
        child = {"k": 1}
        self.assertEqual(to_dynamic([child, child]), [{"k": 1}, {"k": 1}])

    def test_pydantic_models_are_dumped(self) -> None:
        self.assertEqual(to_dynamic({"p": Point(x=1, y=2)}), {"p": {"x": 1, "y": 2}})

    def test_from_dynamic_returns_fresh_containers(self) -> None:
        original = {"list": [1, 2]}
        copy = from_dynamic(original)
        copy["list"].append(3)
        self.assertEqual(original, {"list": [1, 2]})

    def test_dumps_and_loads(self) -> None:
        self.assertEqual(dumps_dynamic({"a": [1, "é"]}), '{"a":[1,"é"]}')
        self.assertEqual(loads_dynamic('{"a": [1, 2.5, null]}'), {"a": [1, 2.5, None]})

    def test_loads_rejects_nan_literals(self) -> None:
        with self.assertRaises(LLMValidationError):
            loads_dynamic('{"a": NaN}')


if __name__ == "__main__":
    unittest.main()
