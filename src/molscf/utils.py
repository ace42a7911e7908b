from __future__ import annotations

import numpy as np

__all__ = [
    "symmetrize",
    "max_asymmetry",
    "as_density_stack",
]


def symmetrize(M: np.ndarray) -> np.ndarray:
    r"""返回 :math:`(M + M^T)/2`（对最后两维），消除浮点不对称。"""
    return 0.5 * (M + np.swapaxes(M, -1, -2))


def max_asymmetry(M: np.ndarray) -> float:
    """:math:`\\max|M - M^T|`，用于对称性检查。"""
    return float(np.max(np.abs(M - np.swapaxes(M, -1, -2))))


def as_density_stack(density: np.ndarray) -> tuple[np.ndarray, bool]:
    """把单个 ``(n, n)`` 密度或 ``(k, n, n)`` 密度组统一成三维数组。

    Returns
    -------
    stack : numpy.ndarray
        形状 ``(k, n, n)``。
    single : bool
        输入是否为单个矩阵（便于调用者还原输出形状）。
    """
    D = np.asarray(density, dtype=float)
    if D.ndim == 2:
        if D.shape[0] != D.shape[1]:
            raise ValueError(f"密度矩阵必须为方阵，当前形状: {D.shape}")
        return D[None], True
    if D.ndim == 3 and D.shape[1] == D.shape[2]:
        return D, False
    raise ValueError(f"密度矩阵形状非法: {D.shape}")
