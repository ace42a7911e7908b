r"""递推关系的公共部件
====================

- :func:`overlap_1d`：Obara–Saika 一维重叠递推；
- :func:`horizontal_transfer`：水平递推（HRR），在同一对中心之间转移角动量

  .. math::

      (\mathbf a, \mathbf b + 1_i| = (\mathbf a + 1_i, \mathbf b| + (A_i - B_i)(\mathbf a, \mathbf b|

  只用到两中心间距，与指数无关，因而可以作用在已收缩的积分上。
"""

from __future__ import annotations

import numpy as np

from ..basis.shell import cartesian_components

__all__ = [
    "raise_index",
    "lower_index",
    "overlap_1d",
    "horizontal_transfer",
]


def raise_index(t: tuple[int, int, int], i: int) -> tuple[int, int, int]:
    out = list(t)
    out[i] += 1
    return tuple(out)


def lower_index(t: tuple[int, int, int], i: int) -> tuple[int, int, int]:
    out = list(t)
    out[i] -= 1
    return tuple(out)


def overlap_1d(imax: int, jmax: int, pa: np.ndarray, pb: np.ndarray, p: np.ndarray) -> np.ndarray:
    r"""一维 Obara–Saika 重叠系数 :math:`E_{ij}`（不含 :math:`\sqrt{\pi/p}\,K_{AB}` 前因子）。

    .. math::

        E_{i+1,j} &= X_{PA} E_{ij} + \frac{1}{2p}\left(i E_{i-1,j} + j E_{i,j-1}\right) \\
        E_{i,j+1} &= X_{PB} E_{ij} + \frac{1}{2p}\left(i E_{i-1,j} + j E_{i,j-1}\right)

    Parameters
    ----------
    imax, jmax : int
        两中心上的最高幂次。
    pa, pb : numpy.ndarray
        :math:`P_x - A_x` 与 :math:`P_x - B_x`（对原函数对向量化）。
    p : numpy.ndarray
        指数和 :math:`\alpha + \beta`。

    Returns
    -------
    numpy.ndarray
        形状 ``(imax + 1, jmax + 1) + pa.shape``。
    """
    pa = np.asarray(pa, dtype=float)
    E = np.zeros((imax + 1, jmax + 1) + pa.shape)
    oo2p = 0.5 / p
    E[0, 0] = 1.0
    for i in range(imax):
        E[i + 1, 0] = pa * E[i, 0]
        if i > 0:
            E[i + 1, 0] += i * oo2p * E[i - 1, 0]
    for j in range(jmax):
        for i in range(imax + 1):
            val = pb * E[i, j]
            if i > 0:
                val = val + i * oo2p * E[i - 1, j]
            if j > 0:
                val = val + j * oo2p * E[i, j - 1]
            E[i, j + 1] = val
    return E


def horizontal_transfer(table: dict, la: int, lb: int, sep) -> np.ndarray:
    """由 :math:`(\\mathbf e, 0|` （:math:`l_a \\le |e| \\le l_a+l_b`）生成 :math:`(\\mathbf a, \\mathbf b|` 块。

    Parameters
    ----------
    table : dict
        ``{(ex, ey, ez): value}``；``value`` 可以是标量或数组（例如整个右矢块）。
    la, lb : int
        目标角动量。
    sep : array_like
        第一中心减第二中心，:math:`\\mathbf A - \\mathbf B`。

    Returns
    -------
    numpy.ndarray
        形状 ``(ncart(la), ncart(lb)) + value.shape``，分量顺序与壳层一致。
    """
    memo: dict = {}

    def rec(a, b):
        key = (a, b)
        if key in memo:
            return memo[key]
        if b == (0, 0, 0):
            val = table[a]
        else:
            i = next(k for k in range(3) if b[k] > 0)
            b1 = lower_index(b, i)
            val = rec(raise_index(a, i), b1) + sep[i] * rec(a, b1)
        memo[key] = val
        return val

    comps_a = cartesian_components(la)
    comps_b = cartesian_components(lb)
    return np.array([[rec(a, b) for b in comps_b] for a in comps_a])
