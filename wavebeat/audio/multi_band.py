"""Multi-band Spectral Energy Module.

This module splits a Fourier score spectrum into contiguous frequency bands
and keeps a short history of the energy seen in each band. The energy
detector compares every new window against that history to decide whether
a band carries a transient.

The main pieces include:
- band_widths: widths of the bands, following a linear ramp over the spectrum
- band_energies: per-band energy of one window of Fourier scores
- BandEnergyHistory: fixed-capacity ring of past energies for every band
"""

import numpy as np

from wavebeat.config.audio_config import (
    BAND_WIDTH_A,
    BAND_WIDTH_B,
    ENERGY_BAND_COUNT,
    ENERGY_HISTORY_SIZE,
    ENERGY_WINDOW_SIZE,
)


def band_widths(band_count=ENERGY_BAND_COUNT, a=BAND_WIDTH_A, b=BAND_WIDTH_B, total=ENERGY_WINDOW_SIZE):
    """
    Compute band widths w(i) = round(a * (i + 1) + b).

    Args:
        band_count (int): Number of bands
        a (float): Ramp slope
        b (float): Ramp offset
        total (int): Number of bins the widths have to cover

    Returns:
        np.ndarray: Integer widths, one per band
    """
    widths = np.round(a * np.arange(1, band_count + 1) + b).astype(int)
    if widths.sum() != total:
        raise ValueError(f"Band widths sum to {widths.sum()}, expected {total}")
    return widths


def band_energies(scores, widths, window_size=ENERGY_WINDOW_SIZE):
    """
    Energy per band: width * (sum of the band's Fourier scores / window size).

    Args:
        scores (np.ndarray): Fourier score per bin
        widths (np.ndarray): Band widths covering the whole spectrum
        window_size (int): Window length used for normalisation

    Returns:
        np.ndarray: float64 energy per band
    """
    starts = np.concatenate(([0], np.cumsum(widths)[:-1]))
    sums = np.add.reduceat(np.asarray(scores, dtype=np.float64), starts)
    return widths * (sums / window_size)


class BandEnergyHistory:
    """Ring buffer holding the last `size` energies of every band.

    Each band owns one row; a push writes one column and evicts the oldest
    entry. Rows start out filled with zeros.
    """

    def __init__(self, band_count=ENERGY_BAND_COUNT, size=ENERGY_HISTORY_SIZE):
        self.size = size
        self.buffer = np.zeros((band_count, size))
        self.pos = 0

    def push(self, energies):
        if len(energies) != self.buffer.shape[0]:
            raise ValueError(f"cannot push {len(energies)} energies into a history of {self.buffer.shape[0]} bands")
        self.buffer[:, self.pos] = energies
        self.pos = (self.pos + 1) % self.size

    def average(self):
        return self.buffer.sum(axis=1) / self.size

    def variance(self, average=None):
        if average is None:
            average = self.average()
        delta = self.buffer - average[:, np.newaxis]
        return (delta * delta).sum(axis=1) / self.size

    def clear(self):
        self.buffer[:] = 0
        self.pos = 0
