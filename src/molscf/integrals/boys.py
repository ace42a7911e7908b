r"""Boys 函数
============

.. math::

    F_n(T) = \int_0^1 t^{2n} \mathrm e^{-T t^2}\,\mathrm dt, \qquad F_n(0) = \frac{1}{2n+1}

两种数值区间（分界 :data:`T_SMALL` = 1e-8）：

- 小 :math:`T`：交错幂级数 :math:`\sum_k (-T)^k / [k!(2n+2k+1)]`；
- 一般 :math:`T`：:math:`F_0 = \tfrac12\sqrt{\pi/T}\,\mathrm{erf}(\sqrt T)` 起步的向上递推

  .. math::

      F_{m+1}(T) = \frac{(2m+1)F_m(T) - \mathrm e^{-T}}{2T}

  每步误差放大 :math:`(2m+1)/(2T)`，只在 :math:`2T \ge 2n+1` 时使用；否则由正项 Kummer 级数

  .. math::

      F_n(T) = \mathrm e^{-T}\sum_{k\ge0}\frac{(2T)^k}{(2n+1)(2n+3)\cdots(2n+2k+1)}

  得到最高阶，再向下递推 :math:`F_m = (2T F_{m+1} + \mathrm e^{-T})/(2m+1)`。

两区间在分界点处一致到机器精度。

References
----------
.. [Boys1950] Boys, S. F. (1950) Proc. R. Soc. Lond. A 200, 542
.. [HelgakerBook] Helgaker, Jørgensen & Olsen (2000) "Molecular Electronic-Structure Theory", §9.8
"""

from __future__ import annotations

import math

import numpy as np
from scipy.special import erf

__all__ = [
    "T_SMALL",
    "boys_small_t",
    "boys_general",
    "boys",
    "boys_sequence",
    "boys_array",
]

T_SMALL = 1e-8

_SERIES_TOL = 1e-17
_MAX_TERMS = 500


def _check(n: int, t: float) -> None:
    if n < 0:
        raise ValueError(f"Boys 函数阶数必须非负，当前值: {n}")
    if t < 0:
        raise ValueError(f"Boys 函数自变量必须非负，当前值: {t}")


def boys_small_t(n: int, t: float) -> float:
    """小 :math:`T` 幂级数（在 :math:`T \\to 0` 处精确）。"""
    _check(n, t)
    total = 0.0
    term = 1.0  # (-T)^k / k!
    for k in range(_MAX_TERMS):
        contrib = term / (2 * n + 2 * k + 1)
        total += contrib
        if abs(contrib) <= _SERIES_TOL * abs(total):
            break
        term *= -t / (k + 1)
    return total


def _kummer(n: int, t):
    """正项级数求 :math:`F_n(T)`，适用于 :math:`2T < 2n+1`；``t`` 可为数组。"""
    t = np.asarray(t, dtype=float)
    term = np.full_like(t, 1.0 / (2 * n + 1))
    total = term.copy()
    for k in range(1, _MAX_TERMS):
        term = term * (2.0 * t) / (2 * n + 2 * k + 1)
        total = total + term
        if np.all(term <= _SERIES_TOL * total):
            break
    return total * np.exp(-t)


def boys_general(n: int, t: float) -> float:
    """一般区间的 Boys 函数（erf + 稳定方向的递推）。"""
    _check(n, t)
    if t == 0.0:
        return 1.0 / (2 * n + 1)
    if 2.0 * t < 2 * n + 1:
        return float(_kummer(n, t))
    f = 0.5 * math.sqrt(math.pi / t) * float(erf(math.sqrt(t)))
    e = math.exp(-t)
    for m in range(n):
        f = ((2 * m + 1) * f - e) / (2.0 * t)
    return f


def boys(n: int, t: float) -> float:
    """Boys 函数 :math:`F_n(T)`，按 :data:`T_SMALL` 选择区间。"""
    if t < T_SMALL:
        return boys_small_t(n, t)
    return boys_general(n, t)


def boys_sequence(n_max: int, t: float) -> np.ndarray:
    """同一 :math:`T` 下的 :math:`F_0, \\dots, F_{n_{\\max}}`。"""
    return boys_array(n_max, np.array([t], dtype=float))[:, 0]


def boys_array(n_max: int, t) -> np.ndarray:
    r"""向量化 Boys 函数。

    Parameters
    ----------
    n_max : int
        最高阶数。
    t : array_like
        非负自变量，任意形状。

    Returns
    -------
    numpy.ndarray
        形状 ``(n_max + 1,) + t.shape``，第一维为阶数 :math:`m`。
    """
    if n_max < 0:
        raise ValueError(f"Boys 函数阶数必须非负，当前值: {n_max}")
    t = np.asarray(t, dtype=float)
    if np.any(t < 0):
        raise ValueError("Boys 函数自变量必须非负")
    out = np.empty((n_max + 1,) + t.shape)

    small = t < T_SMALL
    mid = ~small & (2.0 * t < 2 * n_max + 1)
    large = ~(small | mid)

    if np.any(small):
        ts = t[small]
        for m in range(n_max + 1):
            total = np.zeros_like(ts)
            term = np.ones_like(ts)
            for k in range(8):
                total += term / (2 * m + 2 * k + 1)
                term = term * (-ts) / (k + 1)
            out[m][small] = total

    if np.any(mid):
        tm = t[mid]
        e = np.exp(-tm)
        f = _kummer(n_max, tm)
        out[n_max][mid] = f
        for m in range(n_max - 1, -1, -1):
            f = (2.0 * tm * f + e) / (2 * m + 1)
            out[m][mid] = f

    if np.any(large):
        tl = t[large]
        e = np.exp(-tl)
        f = 0.5 * np.sqrt(np.pi / tl) * erf(np.sqrt(tl))
        out[0][large] = f
        for m in range(n_max):
            f = ((2 * m + 1) * f - e) / (2.0 * tl)
            out[m + 1][large] = f

    return out
