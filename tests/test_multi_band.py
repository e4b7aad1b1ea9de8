import unittest

import numpy as np

from wavebeat.audio.multi_band import BandEnergyHistory, band_energies, band_widths


class TestBandWidths(unittest.TestCase):
    def test_default_layout_covers_the_window(self):
        widths = band_widths()
        self.assertEqual(len(widths), 64)
        self.assertEqual(widths.sum(), 1024)
        self.assertEqual(widths[0], 2)
        self.assertEqual(widths[-1], 30)
        self.assertTrue(np.all(np.diff(widths) >= 0))

    def test_layout_that_does_not_cover_the_window_is_rejected(self):
        with self.assertRaises(ValueError):
            band_widths(total=2048)


class TestBandEnergies(unittest.TestCase):
    def test_flat_scores(self):
        widths = band_widths()
        energy = band_energies(np.ones(1024), widths)
        np.testing.assert_allclose(energy, widths * widths / 1024.0)

    def test_energy_stays_in_its_band(self):
        widths = band_widths()
        scores = np.zeros(1024)
        scores[widths[0] + 1] = 512.0  # second band

        energy = band_energies(scores, widths)

        self.assertEqual(np.flatnonzero(energy).tolist(), [1])
        self.assertAlmostEqual(energy[1], widths[1] * 0.5)


class TestBandEnergyHistory(unittest.TestCase):
    def test_starts_empty(self):
        history = BandEnergyHistory(4, 3)
        np.testing.assert_array_equal(history.average(), np.zeros(4))
        np.testing.assert_array_equal(history.variance(), np.zeros(4))

    def test_oldest_entry_is_evicted(self):
        history = BandEnergyHistory(2, 3)
        for value in [100.0, 1.0, 2.0, 3.0]:
            history.push(np.array([value, 2 * value]))

        np.testing.assert_allclose(history.average(), [2.0, 4.0])
        np.testing.assert_allclose(history.variance(), [2.0 / 3.0, 8.0 / 3.0])

    def test_push_checks_band_count(self):
        history = BandEnergyHistory(2, 3)
        with self.assertRaises(ValueError):
            history.push(np.ones(3))

    def test_clear(self):
        history = BandEnergyHistory(2, 3)
        history.push(np.array([5.0, 5.0]))
        history.clear()
        np.testing.assert_array_equal(history.average(), np.zeros(2))
        self.assertEqual(history.pos, 0)


if __name__ == '__main__':
    unittest.main()
