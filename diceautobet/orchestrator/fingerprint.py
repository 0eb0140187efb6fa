"""
Content fingerprint of a sampled screen region.

SHA-256 over the array shape, dtype and raw pixel bytes: two samples share a
fingerprint iff their pixels are bit-identical (up to digest collisions).
"""
import hashlib

import numpy as np

from diceautobet.orchestrator.contracts import ScreenSample

Fingerprint = bytes

DIGEST_SIZE = hashlib.sha256().digest_size


def fingerprint(sample: ScreenSample) -> Fingerprint:
    pixels = np.ascontiguousarray(sample.pixels)
    h = hashlib.sha256()
    h.update(repr(pixels.shape).encode("ascii"))
    h.update(pixels.dtype.str.encode("ascii"))
    h.update(pixels.tobytes())
    return h.digest()


def short(fp: Fingerprint | None) -> str:
    return fp.hex()[:8] if fp else "-"
