"""
Test cases for the command line helpers.
"""
import unittest
from unittest import mock

import numpy as np

from handspell import main


class FakeCamera:
    """Camera whose read() returns queued results."""

    def __init__(self, results):
        self.results = list(results)

    def read(self):
        return self.results.pop(0)


class TestReadFrame(unittest.TestCase):
    """Test frame reading in the preview loop."""

    def test_failed_read_backs_off(self):
        camera = FakeCamera([(False, None)])
        with mock.patch.object(main.time, "sleep") as sleep:
            self.assertIsNone(main.read_frame(camera, mirror=False))
        sleep.assert_called_once_with(0.01)

    def test_successful_read_does_not_sleep(self):
        image = np.zeros((4, 6, 3), dtype=np.uint8)
        camera = FakeCamera([(True, image)])
        with mock.patch.object(main.time, "sleep") as sleep:
            self.assertIs(main.read_frame(camera, mirror=False), image)
        sleep.assert_not_called()

    def test_mirror_flips_horizontally(self):
        image = np.zeros((2, 3, 3), dtype=np.uint8)
        image[:, 0] = 255
        result = main.read_frame(FakeCamera([(True, image)]), mirror=True)
        self.assertTrue(np.all(result[:, 2] == 255))
        self.assertTrue(np.all(result[:, 0] == 0))


if __name__ == "__main__":
    unittest.main()
