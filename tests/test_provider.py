"""
Test cases for the MediaPipe provider wrapper and landmark drawing.
"""
import unittest

import numpy as np

from handspell.core.landmarks import LandmarkFrame
from handspell.core.provider import LandmarkProvider, MediaPipeLandmarkProvider, draw_landmarks

from poses import FakeProvider, POSE_B


class TestProvider(unittest.TestCase):
    """Test provider behaviour that does not need the model."""

    def test_protocol(self):
        self.assertIsInstance(MediaPipeLandmarkProvider(), LandmarkProvider)
        self.assertIsInstance(FakeProvider(), LandmarkProvider)

    def test_detect_before_load(self):
        provider = MediaPipeLandmarkProvider()
        self.assertFalse(provider.loaded)
        self.assertIsNone(provider.detect(np.zeros((48, 64, 3), dtype=np.uint8)))
        provider.close()


class TestDrawLandmarks(unittest.TestCase):
    """Test overlay rendering."""

    def setUp(self):
        self.image = np.zeros((120, 160, 3), dtype=np.uint8)

    def test_no_frame_returns_copy(self):
        output = draw_landmarks(self.image, None)
        self.assertIsNot(output, self.image)
        self.assertEqual(int(output.sum()), 0)

    def test_draws_without_touching_input(self):
        output = draw_landmarks(self.image, LandmarkFrame.from_points(POSE_B))
        self.assertGreater(int(output.sum()), 0)
        self.assertEqual(int(self.image.sum()), 0)


if __name__ == "__main__":
    unittest.main()
