from .dense import invert, checked_inverse, transpose, trace, frobenius_norm, format_matrix

__all__ = ["invert", "checked_inverse", "transpose", "trace", "frobenius_norm", "format_matrix"]
