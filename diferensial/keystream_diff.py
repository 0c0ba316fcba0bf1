import numpy as np


def _as_u8(ks) -> np.ndarray:
    if isinstance(ks, np.ndarray):
        if ks.dtype != np.uint8:
            raise ValueError("Keystream arrays must be uint8.")
        return ks.ravel()
    return np.frombuffer(bytes(ks), dtype=np.uint8)


def _pair(ks1, ks2) -> tuple[np.ndarray, np.ndarray]:
    a = _as_u8(ks1)
    b = _as_u8(ks2)
    if a.shape != b.shape:
        raise ValueError("Keystreams must have the same length for comparison.")
    return a, b


def byte_change_rate(ks1, ks2) -> float:
    """
    Percentage of byte positions where two keystreams differ (NPCR-style).
    Independent streams sit near 99.6%.
    """
    a, b = _pair(ks1, ks2)
    if a.size == 0:
        return 0.0
    return float(np.count_nonzero(a != b)) / float(a.size) * 100.0


def mean_absolute_difference(ks1, ks2, max_val: float = 255.0) -> float:
    """
    Mean |a - b| over max_val as a percentage (UACI-style).
    Independent uniform bytes sit near 33.5%.
    """
    a, b = _pair(ks1, ks2)
    if a.size == 0:
        return 0.0
    diff = np.abs(a.astype(np.float64) - b.astype(np.float64))
    return float(np.mean(diff) / max_val * 100.0)


def serial_correlation(ks) -> float:
    """
    Pearson correlation between each keystream byte and the next one.
    """
    x = _as_u8(ks).astype(np.float64)
    if x.size < 3:
        return 0.0
    c = np.corrcoef(x[:-1], x[1:])
    return float(c[0, 1])


def compare_keystreams(ks1, ks2) -> dict:
    return {
        "change_rate": byte_change_rate(ks1, ks2),
        "mean_abs_diff": mean_absolute_difference(ks1, ks2),
    }
