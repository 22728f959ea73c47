import asyncio
import threading
import unittest

from fluent_llm.bridge import ExecutionBridge
from fluent_llm.errors import LLMError


async def _double(value: int) -> int:
    await asyncio.sleep(0)
    return value * 2


async def _fail() -> None:
    raise ValueError("boom")


class ExecutionBridgeTests(unittest.TestCase):
    def test_run_blocks_until_result(self) -> None:
        bridge = ExecutionBridge()
        self.addCleanup(bridge.release)
        self.assertEqual(bridge.run(_double(21)), 42)

    def test_exceptions_propagate(self) -> None:
        bridge = ExecutionBridge()
        self.addCleanup(bridge.release)
        with self.assertRaises(ValueError):
            bridge.run(_fail())

    def test_reference_count_keeps_loop_alive(self) -> None:
        bridge = ExecutionBridge()
        bridge.retain()
        self.assertEqual(bridge.refs, 2)
        bridge.release()
        self.assertFalse(bridge.closed)
        self.assertEqual(bridge.run(_double(1)), 2)
        bridge.release()
        self.assertTrue(bridge.closed)
        with self.assertRaises(LLMError):
            bridge.run(_double(1))
        with self.assertRaises(LLMError):
            bridge.retain()

    def test_release_is_idempotent_after_close(self) -> None:
        bridge = ExecutionBridge()
        bridge.release()
        bridge.release()
        self.assertEqual(bridge.refs, 0)

    def test_concurrent_callers_share_one_loop(self) -> None:
        bridge = ExecutionBridge()
        self.addCleanup(bridge.release)
        results: list[int] = []
        lock = threading.Lock()

        def worker(n: int) -> None:
            value = bridge.run(_double(n))
            with lock:
                results.append(value)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(sorted(results), [n * 2 for n in range(8)])


if __name__ == "__main__":
    unittest.main()
