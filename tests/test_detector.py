"""
Test cases for the detector facade.
"""
import asyncio
import threading
import unittest

from handspell.config.settings import Config, PhraseConfig, StabilityConfig
from handspell.core.detector import DetectorStatus, SignDetector
from handspell.core.errors import InitializationError, PreconditionError
from handspell.core.gesture import SPACE, GestureCandidate
from handspell.core.stability import GestureBufferEntry

from poses import FakeProvider, POSE_A, POSE_B, POSE_D, POSE_L, POSE_SPACE, WRIST, replace


class TestDetectorLifecycle(unittest.TestCase):
    """Test backend initialization and disposal."""

    def test_initialize(self):
        provider = FakeProvider()
        detector = SignDetector(provider)
        self.assertEqual(detector.status, DetectorStatus.IDLE)
        self.assertTrue(detector.initialize(timeout=5))
        self.assertTrue(detector.is_ready)
        self.assertEqual(provider.load_count, 1)

    def test_initialize_is_idempotent(self):
        provider = FakeProvider()
        detector = SignDetector(provider)
        detector.initialize(timeout=5)
        self.assertTrue(detector.initialize(timeout=5))
        self.assertTrue(detector.start_initialize().done())
        self.assertEqual(provider.load_count, 1)

    def test_concurrent_initialize_loads_once(self):
        gate = threading.Event()
        provider = FakeProvider(gate=gate)
        detector = SignDetector(provider)

        results = []
        threads = [threading.Thread(target=lambda: results.append(detector.initialize(timeout=5)))
                   for _ in range(4)]
        for thread in threads:
            thread.start()

        first = detector.start_initialize()
        self.assertIs(detector.start_initialize(), first)
        self.assertEqual(detector.status, DetectorStatus.LOADING)

        gate.set()
        for thread in threads:
            thread.join(5)

        self.assertEqual(results, [True] * 4)
        self.assertEqual(provider.load_count, 1)

    def test_failed_initialize_can_retry(self):
        provider = FakeProvider(fail_times=1)
        detector = SignDetector(provider)

        self.assertFalse(detector.initialize(timeout=5))
        self.assertEqual(detector.status, DetectorStatus.FAILED)
        self.assertIsInstance(detector.last_error, InitializationError)
        self.assertIsInstance(detector.last_error.__cause__, RuntimeError)

        self.assertTrue(detector.initialize(timeout=5))
        self.assertTrue(detector.is_ready)
        self.assertIsNone(detector.last_error)
        self.assertEqual(provider.load_count, 2)

    def test_future_carries_error(self):
        detector = SignDetector(FakeProvider(fail_times=1))
        future = detector.start_initialize()
        with self.assertRaises(InitializationError):
            future.result(5)

    def test_ensure_ready(self):
        detector = SignDetector(FakeProvider())
        with self.assertRaises(PreconditionError):
            detector.ensure_ready()
        detector.initialize(timeout=5)
        detector.ensure_ready()

    def test_dispose(self):
        provider = FakeProvider()
        with SignDetector(provider) as detector:
            detector.initialize(timeout=5)
        self.assertTrue(provider.closed)
        self.assertEqual(detector.status, DetectorStatus.IDLE)

    def test_initialize_timeout_returns_false(self):
        gate = threading.Event()
        detector = SignDetector(FakeProvider(gate=gate))
        self.assertFalse(detector.initialize(timeout=0.05))
        self.assertEqual(detector.status, DetectorStatus.LOADING)

        gate.set()
        self.assertTrue(detector.initialize(timeout=5))

    def test_timed_out_async_waiter_keeps_shared_load(self):
        """An asyncio waiter giving up does not cancel the load for other callers."""
        gate = threading.Event()
        provider = FakeProvider(gate=gate)
        detector = SignDetector(provider)

        results = []
        joiner = threading.Thread(target=lambda: results.append(detector.initialize(timeout=5)))
        joiner.start()
        self.assertTrue(provider.started.wait(5))

        shared = detector.start_initialize()

        async def give_up():
            await asyncio.wait_for(asyncio.wrap_future(shared), 0.05)

        with self.assertRaises(asyncio.TimeoutError):
            asyncio.run(give_up())

        gate.set()
        joiner.join(5)

        self.assertEqual(results, [True])
        self.assertFalse(shared.cancelled())
        self.assertIsNone(shared.result(5))
        self.assertTrue(detector.is_ready)

    def test_dispose_during_load_discards_result(self):
        gate = threading.Event()
        provider = FakeProvider(gate=gate)
        detector = SignDetector(provider)

        future = detector.start_initialize()
        self.assertTrue(provider.started.wait(5))
        detector.dispose()
        gate.set()

        with self.assertRaises(InitializationError):
            future.result(5)
        self.assertEqual(detector.status, DetectorStatus.IDLE)
        self.assertTrue(provider.closed)
        self.assertIsNone(detector.detect_and_classify(object(), 1000))

        provider.closed = False
        self.assertTrue(detector.initialize(timeout=5))
        self.assertEqual(provider.load_count, 2)


class TestDetectorPipeline(unittest.TestCase):
    """Test per-frame processing."""

    def setUp(self):
        self.provider = FakeProvider()
        self.detector = SignDetector(self.provider, Config())
        self.detector.initialize(timeout=5)

    def test_not_ready_returns_none_without_state_change(self):
        provider = FakeProvider()
        provider.next_points = POSE_A
        detector = SignDetector(provider)
        self.assertIsNone(detector.detect_and_classify(object(), 1000))
        self.assertEqual(detector.buffer_snapshot(), ())
        self.assertIsNone(detector.last_candidate)

    def test_detect_and_classify(self):
        self.provider.next_points = POSE_A
        self.assertEqual(self.detector.detect_and_classify(object(), 1000), "A")
        self.assertEqual(self.detector.buffer_snapshot(), (GestureBufferEntry("A", 1000),))
        self.assertEqual(self.detector.last_candidate.symbol, "A")
        self.assertIsNotNone(self.detector.last_features)

    def test_no_hand(self):
        self.provider.next_points = POSE_L
        self.detector.detect_and_classify(object(), 1000)
        self.provider.next_points = None
        self.assertIsNone(self.detector.detect_and_classify(object(), 1033))
        self.assertIsNone(self.detector.last_symbol)
        self.assertEqual(len(self.detector.buffer_snapshot()), 1)

    def test_provider_error_is_no_hand(self):
        self.provider.next_points = POSE_L
        self.detector.detect_and_classify(object(), 1000)
        self.provider.error = RuntimeError("camera glitch")
        self.assertIsNone(self.detector.detect_and_classify(object(), 1033))

    def test_malformed_landmarks_are_no_hand(self):
        self.assertIsNone(self.detector.process_landmarks(POSE_A[:5], 1000))
        self.assertIsNone(self.detector.process_landmarks([], 1000))
        self.assertEqual(self.detector.buffer_snapshot(), ())

    def test_oversized_coordinates_are_no_hand(self):
        points = replace(POSE_A, {3: (10 ** 400, 0.5, 0.0)})
        self.assertIsNone(self.detector.process_landmarks(points, 1000))
        self.provider.next_points = points
        self.assertIsNone(self.detector.detect_and_classify(object(), 1033))

    def test_degenerate_landmarks_are_no_hand(self):
        points = replace(POSE_B, {9: WRIST})
        self.assertIsNone(self.detector.process_landmarks(points, 1000))
        self.assertIsNone(self.detector.last_features)

    def test_hysteresis_through_pipeline(self):
        """A weak frame keeps the previous symbol."""
        config = Config(stability=StabilityConfig(confidence_threshold=0.75))
        detector = SignDetector(FakeProvider(), config)
        self.assertEqual(detector.process_landmarks(POSE_L, 1000), "L")
        # D scores 0.72 which is below 0.75
        self.assertEqual(detector.process_landmarks(POSE_D, 1033), "L")
        self.assertEqual(len(detector.buffer_snapshot()), 1)

    def test_space_pose(self):
        self.assertEqual(self.detector.process_landmarks(POSE_SPACE, 1000), SPACE)

    def test_phrase_detection(self):
        letters = "HELLO"
        for i, symbol in enumerate(letters):
            self.detector._stability.update(GestureCandidate(symbol, 0.9), True, 1000 + i * 100)
        self.assertEqual(self.detector.check_for_phrases(1500), "Hello")
        self.assertIsNone(self.detector.check_for_phrases(1600))
        self.assertEqual(self.detector.phrase_history(), ("Hello",))
        self.assertEqual(self.detector.current_sentence(), "Hello")

    def test_phrase_window_from_config(self):
        config = Config(phrases=PhraseConfig(window=2))
        detector = SignDetector(FakeProvider(), config)
        for i, symbol in enumerate("YES"):
            detector._stability.update(GestureCandidate(symbol, 0.9), True, 1000 + i)
        self.assertIsNone(detector.check_for_phrases(1100))

    def test_reset(self):
        self.detector.process_landmarks(POSE_A, 1000)
        self.detector.reset()
        self.assertEqual(self.detector.buffer_snapshot(), ())
        self.assertIsNone(self.detector.last_symbol)
        self.assertIsNone(self.detector.last_candidate)
        self.assertTrue(self.detector.is_ready)

    def test_reset_keeps_phrase_cooldown(self):
        for i, symbol in enumerate("HELLO"):
            self.detector._stability.update(GestureCandidate(symbol, 0.9), True, 1000 + i)
        self.assertEqual(self.detector.check_for_phrases(1100), "Hello")

        self.detector.reset()
        for i, symbol in enumerate("HELLO"):
            self.detector._stability.update(GestureCandidate(symbol, 0.9), True, 1200 + i)
        self.assertIsNone(self.detector.check_for_phrases(1300))
        self.assertEqual(self.detector.phrase_history(), ())
        self.assertEqual(self.detector.check_for_phrases(4100), "Hello")


if __name__ == "__main__":
    unittest.main()
