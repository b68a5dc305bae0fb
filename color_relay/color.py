"""Color value type and frame averaging."""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

# The white channel has no sampler input; it is always sent as 0.
WHITE_CHANNEL = 0


@dataclass(frozen=True)
class Color:
    """An RGBW color with 0..255 integer channels."""

    r: int = 0
    g: int = 0
    b: int = 0
    w: int = WHITE_CHANNEL

    def to_payload(self) -> Dict[str, int]:
        """Return the JSON body expected by the color endpoint."""
        return {"r": int(self.r), "g": int(self.g), "b": int(self.b), "w": int(self.w)}

    def css(self) -> str:
        """Return the swatch color as a CSS `rgb()` string."""
        return f"rgb({self.r}, {self.g}, {self.b})"


def average_rgb(data) -> Tuple[int, int, int]:
    """Average interleaved RGBA samples into one RGB triple.

    Args:
      data: Flat bytes, list or array of R,G,B,A samples (length 4*N).

    Returns:
      `(r, g, b)` means rounded half-up; alpha is ignored. An empty buffer
      yields `(0, 0, 0)`.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        px = np.frombuffer(bytes(data), dtype=np.uint8)
    else:
        px = np.asarray(data)
    if px.size == 0:
        return 0, 0, 0
    px = px.reshape(-1, 4)
    means = px[:, :3].astype(np.float64).mean(axis=0)
    r, g, b = (int(v) for v in np.floor(means + 0.5))
    return r, g, b
