"""In-place Radix-2 Fast Fourier Transform.

This module moves windows of samples into the frequency domain for both
beat detectors. The transform follows the classic Danielson-Lanczos split:
two half-size transforms are combined with twiddle factors generated by an
incremental rotation, starting from half-angle sine values, instead of
recomputing sine/cosine per butterfly. Everything runs in single precision
and no scaling is applied.

The main functions include:
- lanczos_fft: butterfly passes over interleaved or complex data, no reindexing
- bit_reverse: bit-reversal permutation of complex values
- transform: bit_reverse followed by lanczos_fft, in place
- fft: copying convenience wrapper returning ascending-frequency bins

Butterfly passes run over block reshapes of a single buffer.
"""

import math
from functools import lru_cache

import numpy as np


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _check_length(n: int) -> None:
    if not is_power_of_two(n):
        raise ValueError(f"Transform length must be a power of two, got {n}")


def _as_complex(data: np.ndarray, n: int) -> np.ndarray:
    """Return a complex64 view over the first n complex values of data."""
    if data.dtype == np.complex64:
        if len(data) < n:
            raise ValueError(f"Buffer holds {len(data)} complex values, need {n}")
        return data[:n]
    if data.dtype == np.float32:
        if len(data) < 2 * n:
            raise ValueError(f"Buffer holds {len(data)} values, need {2 * n}")
        return data[:2 * n].view(np.complex64)
    raise TypeError(f"Expected a float32 or complex64 buffer, got {data.dtype}")


@lru_cache(maxsize=None)
def _twiddles(size: int) -> np.ndarray:
    """Rotor values used to merge two size/2-point halves into one block.

    The rotor is seeded from sin(pi/size) and advanced by its own
    recurrence, which keeps the accumulated float32 error small.
    """
    half = size // 2
    wtemp = np.float32(math.sin(math.pi / size))
    wpr = np.float32(-2.0) * wtemp * wtemp
    wpi = -np.float32(math.sin(2.0 * math.pi / size))
    wr = np.float32(1.0)
    wi = np.float32(0.0)

    rotor = np.empty(half, dtype=np.complex64)
    for k in range(half):
        rotor[k] = complex(wr, wi)
        wtemp = wr
        wr = wr + (wr * wpr - wi * wpi)
        wi = wi + (wi * wpr + wtemp * wpi)

    rotor.flags.writeable = False
    return rotor


@lru_cache(maxsize=None)
def _bit_reversed_indices(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    index = np.arange(n)
    reversed_index = np.zeros(n, dtype=np.intp)
    for b in range(bits):
        reversed_index |= ((index >> b) & 1) << (bits - 1 - b)
    reversed_index.flags.writeable = False
    return reversed_index


def lanczos_fft(n: int, data: np.ndarray) -> np.ndarray:
    """Transform n complex values of data in place.

    Args:
        n (int): Number of complex points, a power of two. 1 is the identity.
        data (np.ndarray): float32 buffer with 2n interleaved (re, im)
            values, or a complex64 buffer with n values.

    Returns:
        np.ndarray: The complex64 view that was transformed.

    The input is expected in bit-reversed order; passing natural-order data
    yields the transform of the bit-reversed sequence.
    """
    _check_length(n)
    values = _as_complex(data, n)

    size = 2
    while size <= n:
        half = size // 2
        blocks = values.reshape(-1, size)
        rotated = blocks[:, half:] * _twiddles(size)
        blocks[:, half:] = blocks[:, :half] - rotated
        blocks[:, :half] += rotated
        size *= 2

    return values


def bit_reverse(data: np.ndarray, n: int = None) -> np.ndarray:
    """Reorder complex values of data by bit-reversed index, in place.

    Args:
        data (np.ndarray): float32 interleaved or complex64 buffer
        n (int, optional): Number of complex points. Defaults to the whole buffer.
    """
    if n is None:
        n = len(data) // 2 if data.dtype == np.float32 else len(data)
    _check_length(n)
    values = _as_complex(data, n)
    values[:] = values[_bit_reversed_indices(n)]
    return values


def transform(data: np.ndarray, n: int = None) -> np.ndarray:
    """Ascending-frequency DFT of data, computed in place."""
    values = bit_reverse(data, n)
    return lanczos_fft(len(values), values)


def fft(values) -> np.ndarray:
    """Return the unscaled DFT of values without touching the input.

    Args:
        values: 1-D sequence of complex or real values, power-of-two length

    Returns:
        np.ndarray: complex64 bins in standard ascending-frequency order
    """
    buffer = np.array(values, dtype=np.complex64).ravel()
    _check_length(len(buffer))
    return transform(buffer)
