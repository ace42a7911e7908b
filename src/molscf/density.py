from __future__ import annotations

import numpy as np

__all__ = [
    "closed_shell_density",
    "spin_density",
    "rms_density_change",
    "electron_count",
    "idempotency_error",
]


def closed_shell_density(C: np.ndarray, n_occ: int) -> np.ndarray:
    r"""闭壳层总密度 :math:`P = 2\,C_{\mathrm{occ}} C_{\mathrm{occ}}^T`。"""
    Cocc = C[:, :n_occ]
    return 2.0 * (Cocc @ Cocc.T)


def spin_density(C: np.ndarray, n_occ: int) -> np.ndarray:
    r"""单自旋密度 :math:`P_\sigma = C_{\sigma,\mathrm{occ}} C_{\sigma,\mathrm{occ}}^T`。"""
    Cocc = C[:, :n_occ]
    return Cocc @ Cocc.T


def rms_density_change(P_new: np.ndarray, P_old: np.ndarray) -> float:
    r"""密度变化的均方根 :math:`\sqrt{\sum_{\mu\nu}\Delta P_{\mu\nu}^2}/n`。

    对非限制性情形（``(2, n, n)``）返回两自旋之和。
    """
    d = np.asarray(P_new) - np.asarray(P_old)
    n = d.shape[-1]
    if d.ndim == 3:
        return float(sum(np.sqrt(np.sum(x * x)) / n for x in d))
    return float(np.sqrt(np.sum(d * d)) / n)


def electron_count(P: np.ndarray, S: np.ndarray) -> float:
    r""":math:`\mathrm{tr}(PS)`；非限制性时对自旋求和。"""
    P = np.asarray(P)
    if P.ndim == 3:
        return float(sum(np.sum(x * S) for x in P))
    return float(np.sum(P * S))


def idempotency_error(P: np.ndarray, S: np.ndarray, occupation: float = 2.0) -> float:
    r""":math:`\max|PSP - f P|`，:math:`f` 为轨道占据数（闭壳层 2，单自旋 1）。"""
    return float(np.max(np.abs(P @ S @ P - occupation * P)))
